"""
Postgres DDL for the loyalty tables.

Applied as a Supabase migration (SQL editor or `supabase db push`). The
constraints here back the invariants the services rely on: non-negative
balances, unique reward codes, one code per redemption and one
idempotency key per user. ``credit_points`` and ``redeem_points`` perform
each balance change together with its ledger row (and reward code) in a
single transaction; the services call them through ``db.rpc``.
"""

SCHEMA = """
CREATE EXTENSION IF NOT EXISTS pgcrypto;

CREATE TABLE IF NOT EXISTS profiles (
    id UUID PRIMARY KEY REFERENCES auth.users(id) ON DELETE CASCADE,
    email TEXT UNIQUE NOT NULL,
    name TEXT NOT NULL DEFAULT '',
    points INTEGER NOT NULL DEFAULT 0 CHECK (points >= 0),
    is_admin BOOLEAN NOT NULL DEFAULT FALSE,
    created_at TIMESTAMPTZ NOT NULL DEFAULT now(),
    updated_at TIMESTAMPTZ NOT NULL DEFAULT now()
);

CREATE INDEX IF NOT EXISTS idx_profiles_created_at ON profiles(created_at DESC);

CREATE TABLE IF NOT EXISTS point_transactions (
    id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
    user_id UUID NOT NULL REFERENCES profiles(id),
    type TEXT NOT NULL CHECK (type IN ('earn', 'redeem')),
    amount INTEGER NOT NULL CHECK (
        (type = 'earn' AND amount > 0) OR (type = 'redeem' AND amount < 0)
    ),
    description TEXT NOT NULL,
    idempotency_key TEXT,
    balance_after INTEGER NOT NULL CHECK (balance_after >= 0),
    created_at TIMESTAMPTZ NOT NULL DEFAULT now(),
    UNIQUE (user_id, idempotency_key)
);

CREATE INDEX IF NOT EXISTS idx_point_transactions_user
    ON point_transactions(user_id, created_at DESC);

-- Ledger rows are append-only
CREATE OR REPLACE FUNCTION forbid_ledger_mutation() RETURNS trigger AS $$
BEGIN
    RAISE EXCEPTION 'point_transactions is append-only';
END;
$$ LANGUAGE plpgsql;

DROP TRIGGER IF EXISTS point_transactions_append_only ON point_transactions;
CREATE TRIGGER point_transactions_append_only
    BEFORE UPDATE OR DELETE ON point_transactions
    FOR EACH ROW EXECUTE FUNCTION forbid_ledger_mutation();

CREATE TABLE IF NOT EXISTS rewards (
    id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
    name TEXT NOT NULL,
    points_cost INTEGER NOT NULL CHECK (points_cost > 0),
    created_at TIMESTAMPTZ NOT NULL DEFAULT now()
);

CREATE TABLE IF NOT EXISTS reward_codes (
    id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
    transaction_id UUID UNIQUE NOT NULL REFERENCES point_transactions(id),
    user_id UUID NOT NULL REFERENCES profiles(id),
    reward_id UUID REFERENCES rewards(id),
    code TEXT UNIQUE NOT NULL,
    created_at TIMESTAMPTZ NOT NULL DEFAULT now(),
    fulfilled_at TIMESTAMPTZ
);

CREATE INDEX IF NOT EXISTS idx_reward_codes_user ON reward_codes(user_id, created_at DESC);

CREATE TABLE IF NOT EXISTS otps (
    id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
    email TEXT UNIQUE NOT NULL,
    code_hash TEXT NOT NULL,
    expires_at TIMESTAMPTZ NOT NULL,
    attempts INTEGER NOT NULL DEFAULT 0,
    created_at TIMESTAMPTZ NOT NULL DEFAULT now()
);

CREATE INDEX IF NOT EXISTS idx_otps_expires_at ON otps(expires_at);

-- Tables are only reached through the service-role key
ALTER TABLE profiles ENABLE ROW LEVEL SECURITY;
ALTER TABLE point_transactions ENABLE ROW LEVEL SECURITY;
ALTER TABLE rewards ENABLE ROW LEVEL SECURITY;
ALTER TABLE reward_codes ENABLE ROW LEVEL SECURITY;
ALTER TABLE otps ENABLE ROW LEVEL SECURITY;

-- Ledger writes. Each function runs in one transaction, so the balance,
-- the ledger row and the reward code become visible together or not at all.
-- Custom SQLSTATEs: LY001 insufficient points, LY002 no unique reward code.

CREATE OR REPLACE FUNCTION credit_points(
    p_user_id UUID,
    p_amount INTEGER,
    p_description TEXT
) RETURNS TABLE (new_balance INTEGER, ledger_transaction_id UUID)
LANGUAGE plpgsql
AS $$
DECLARE
    v_balance INTEGER;
    v_transaction_id UUID;
BEGIN
    IF p_amount IS NULL OR p_amount <= 0 THEN
        RAISE EXCEPTION 'amount must be positive' USING ERRCODE = '22023';
    END IF;

    UPDATE profiles SET points = points + p_amount, updated_at = now()
        WHERE id = p_user_id
        RETURNING points INTO v_balance;
    IF NOT FOUND THEN
        RAISE EXCEPTION 'profile % not found', p_user_id USING ERRCODE = 'P0002';
    END IF;

    INSERT INTO point_transactions (user_id, type, amount, description, balance_after)
        VALUES (p_user_id, 'earn', p_amount, p_description, v_balance)
        RETURNING id INTO v_transaction_id;

    RETURN QUERY SELECT v_balance, v_transaction_id;
END;
$$;

CREATE OR REPLACE FUNCTION redeem_points(
    p_user_id UUID,
    p_amount INTEGER,
    p_description TEXT,
    p_codes TEXT[],
    p_reward_id UUID DEFAULT NULL,
    p_idempotency_key TEXT DEFAULT NULL
) RETURNS TABLE (new_balance INTEGER, ledger_transaction_id UUID, reward_code TEXT)
LANGUAGE plpgsql
AS $$
DECLARE
    v_balance INTEGER;
    v_transaction_id UUID;
    v_code TEXT;
BEGIN
    IF p_amount IS NULL OR p_amount <= 0 THEN
        RAISE EXCEPTION 'amount must be positive' USING ERRCODE = '22023';
    END IF;

    -- Row lock: a concurrent redemption waits here and re-checks the balance
    UPDATE profiles SET points = points - p_amount, updated_at = now()
        WHERE id = p_user_id AND points >= p_amount
        RETURNING points INTO v_balance;
    IF NOT FOUND THEN
        SELECT points INTO v_balance FROM profiles WHERE id = p_user_id;
        IF NOT FOUND THEN
            RAISE EXCEPTION 'profile % not found', p_user_id USING ERRCODE = 'P0002';
        END IF;
        RAISE EXCEPTION 'insufficient points'
            USING ERRCODE = 'LY001', DETAIL = v_balance::TEXT;
    END IF;

    INSERT INTO point_transactions (user_id, type, amount, description, idempotency_key, balance_after)
        VALUES (p_user_id, 'redeem', -p_amount, p_description, p_idempotency_key, v_balance)
        RETURNING id INTO v_transaction_id;

    FOREACH v_code IN ARRAY p_codes LOOP
        BEGIN
            INSERT INTO reward_codes (transaction_id, user_id, reward_id, code)
                VALUES (v_transaction_id, p_user_id, p_reward_id, v_code);
            RETURN QUERY SELECT v_balance, v_transaction_id, v_code;
            RETURN;
        EXCEPTION WHEN unique_violation THEN
            RAISE NOTICE 'reward code collision, trying next candidate';
        END;
    END LOOP;

    RAISE EXCEPTION 'no unique reward code after % candidates', coalesce(array_length(p_codes, 1), 0)
        USING ERRCODE = 'LY002';
END;
$$;

-- Callable with the service-role key only
REVOKE EXECUTE ON FUNCTION credit_points(UUID, INTEGER, TEXT) FROM PUBLIC, anon, authenticated;
REVOKE EXECUTE ON FUNCTION redeem_points(UUID, INTEGER, TEXT, TEXT[], UUID, TEXT) FROM PUBLIC, anon, authenticated;
GRANT EXECUTE ON FUNCTION credit_points(UUID, INTEGER, TEXT) TO service_role;
GRANT EXECUTE ON FUNCTION redeem_points(UUID, INTEGER, TEXT, TEXT[], UUID, TEXT) TO service_role;
"""
