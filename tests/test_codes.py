import re
import uuid
from concurrent.futures import ThreadPoolExecutor

import pytest

from app.services import ledger
from app.services.codes import CODE_ALPHABET, generate_otp, generate_reward_code

CODE_PATTERN = re.compile(rf"^[{CODE_ALPHABET}]{{5}}-[{CODE_ALPHABET}]{{5}}$")


def test_reward_code_format():
    code = generate_reward_code()

    assert CODE_PATTERN.match(code), code


def test_reward_code_alphabet_has_no_ambiguous_characters():
    for char in "0O1IL":
        assert char not in CODE_ALPHABET


@pytest.mark.parametrize("length", [4, 6])
def test_short_reward_codes_are_not_split(length):
    code = generate_reward_code(length)

    assert len(code) == length
    assert "-" not in code


def test_otp_is_zero_padded_digits():
    for _ in range(200):
        otp = generate_otp(6)
        assert len(otp) == 6
        assert otp.isdigit()


def test_ten_thousand_concurrent_codes_are_distinct():
    with ThreadPoolExecutor(max_workers=16) as pool:
        codes = list(pool.map(lambda _: generate_reward_code(), range(10_000)))

    assert len(set(codes)) == 10_000


def test_concurrently_issued_codes_are_unique_in_the_store(db, make_user):
    user = make_user()

    def issue(_):
        return ledger.issue_reward_code(str(uuid.uuid4()), user.id)

    with ThreadPoolExecutor(max_workers=16) as pool:
        rows = list(pool.map(issue, range(500)))

    stored = db.rows("reward_codes")
    assert len(stored) == 500
    assert len({r["code"] for r in stored}) == 500
    assert {r["code"] for r in rows} == {r["code"] for r in stored}
