"""
User-facing messages returned by the action procedures.

Maps message keys to supported locales. Messages never embed datastore
error details; those stay in the logs.
"""

SUPPORTED_LOCALES = ("en", "it")

_MESSAGES: dict[str, dict[str, str]] = {
    # Generic failures
    "unexpected_error": {
        "en": "An unexpected error occurred. Please try again.",
        "it": "Si è verificato un errore imprevisto. Riprova.",
    },
    "store_unavailable": {
        "en": "The service is temporarily unavailable. Please try again later.",
        "it": "Servizio temporaneamente non disponibile. Riprova più tardi.",
    },
    "invalid_input": {
        "en": "Invalid input: {reason}.",
        "it": "Input non valido: {reason}.",
    },
    "unauthenticated": {
        "en": "You are not signed in. Please sign in to continue.",
        "it": "Utente non autenticato. Per favore, accedi.",
    },
    "unauthorized": {
        "en": "Unauthorized: administrator access required.",
        "it": "Non autorizzato, non admin.",
    },
    "not_found": {
        "en": "{resource} not found.",
        "it": "{resource} non trovato.",
    },
    "insufficient_points": {
        "en": "Insufficient points: you have {balance}, {required} are required.",
        "it": "Punti insufficienti: ne hai {balance}, ne servono {required}.",
    },
    "already_fulfilled": {
        "en": "This reward has already been fulfilled.",
        "it": "Questo premio è già stato consegnato.",
    },
    "code_generation_failed": {
        "en": "Could not generate a reward code. Your points were not deducted.",
        "it": "Errore nella generazione del codice premio. I tuoi punti non sono stati scalati.",
    },
    "request_conflict": {
        "en": "This request is already being processed or could not be completed. Please try again.",
        "it": "Questa richiesta è già in elaborazione o non è stata completata. Riprova.",
    },
    "identity_error": {
        "en": "Authentication failed. Please try again.",
        "it": "Errore di autenticazione. Riprova.",
    },
    # Identity
    "email_already_registered": {
        "en": "Email already registered. Please sign in.",
        "it": "Email già registrata. Per favore, accedi.",
    },
    "weak_password": {
        "en": "The password must be at least 6 characters long.",
        "it": "La password deve contenere almeno 6 caratteri.",
    },
    "invalid_credentials": {
        "en": "Invalid credentials.",
        "it": "Credenziali non valide.",
    },
    "email_not_confirmed": {
        "en": "Email not confirmed. Check your inbox.",
        "it": "Email non confermata. Controlla la tua casella di posta.",
    },
    "sign_up_success": {
        "en": "Registration complete. Check your email for verification.",
        "it": "Registrazione completata. Controlla la tua email per la verifica.",
    },
    "sign_up_profile_failed": {
        "en": "Account created but initialization failed. Please contact support.",
        "it": "Account creato ma errore nell'inizializzazione, contattare il supporto admin.",
    },
    "sign_in_success": {
        "en": "Signed in successfully!",
        "it": "Accesso effettuato con successo!",
    },
    "sign_out_success": {
        "en": "Signed out successfully.",
        "it": "Logout effettuato con successo.",
    },
    # Profile and ledger
    "profile_loaded": {
        "en": "Profile loaded successfully.",
        "it": "Profilo caricato con successo.",
    },
    "points_redeemed": {
        "en": "Redeemed {amount} points! Your reward code is: {code}",
        "it": "Hai riscattato {amount} punti! Il tuo codice premio è: {code}",
    },
    "points_added": {
        "en": "Added {amount} points. New balance: {balance}.",
        "it": "Aggiunti {amount} punti. Nuovo totale: {balance}.",
    },
    "points_added_by_email": {
        "en": "Added {amount} points to {email}. New balance: {balance}.",
        "it": "Aggiunti {amount} punti a {email}. Nuovo totale: {balance}.",
    },
    "admin_points_description": {
        "en": "Points added by an administrator",
        "it": "Aggiunti punti da parte dell'amministratore",
    },
    "reversal_description": {
        "en": "Reversal of failed redemption: {description}",
        "it": "Storno riscatto non riuscito: {description}",
    },
    # Admin views
    "users_loaded": {
        "en": "Users loaded successfully.",
        "it": "Utenti caricati con successo.",
    },
    "redemptions_loaded": {
        "en": "Redeemed rewards loaded successfully.",
        "it": "Premi riscattati caricati con successo.",
    },
    "reward_fulfilled": {
        "en": "Reward marked as fulfilled!",
        "it": "Premio segnato come consegnato!",
    },
    # Catalog
    "reward_created": {
        "en": 'Reward "{name}" created successfully.',
        "it": 'Premio "{name}" creato con successo.',
    },
    "rewards_loaded": {
        "en": "Rewards loaded successfully.",
        "it": "Premi recuperati con successo.",
    },
    "reward_redeemed": {
        "en": 'You redeemed "{name}"! Your reward code is: {code}',
        "it": 'Hai riscattato "{name}"! Il tuo codice premio è: {code}',
    },
    "reward_redemption_description": {
        "en": "Redeemed reward: {name}",
        "it": "Riscatto premio: {name}",
    },
    # Email verification
    "verification_sent": {
        "en": "Verification code sent to {email}.",
        "it": "Codice di verifica inviato a {email}.",
    },
    "verification_send_failed": {
        "en": "Could not send the verification code. Please try again.",
        "it": "Impossibile inviare il codice di verifica. Riprova.",
    },
    "verification_success": {
        "en": "Email verified successfully.",
        "it": "Email verificata con successo.",
    },
    "verification_invalid": {
        "en": "Invalid or expired verification code.",
        "it": "Codice di verifica non valido o scaduto.",
    },
    # Verification email
    "verification_email_subject": {
        "en": "Your verification code",
        "it": "Il tuo codice di verifica",
    },
    "verification_email_heading": {
        "en": "Verify your email",
        "it": "Verifica la tua email",
    },
    "verification_email_intro": {
        "en": "Enter this code to confirm your email address:",
        "it": "Inserisci questo codice per confermare il tuo indirizzo email:",
    },
    "verification_email_expiry": {
        "en": "The code expires in {minutes} minutes and works only once.",
        "it": "Il codice scade tra {minutes} minuti e può essere usato una sola volta.",
    },
    "verification_email_ignore": {
        "en": "If you did not request this code, ignore this email.",
        "it": "Se non hai richiesto questo codice, ignora questa email.",
    },
}


def get_message(key: str, locale: str | None = None, **kwargs: str | int) -> str:
    """Return a translated message with placeholder substitution.

    Falls back to English if the locale or key is not found.
    """
    if locale is None:
        from app.core.config import settings
        locale = settings.message_locale

    strings = _MESSAGES.get(key, {})
    template = strings.get(locale) or strings.get("en", key)
    try:
        return template.format(**kwargs)
    except (KeyError, IndexError):
        return template
