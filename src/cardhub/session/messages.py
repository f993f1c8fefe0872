"""
cardhub.session.messages

User-visible session messages, by locale.
"""

from __future__ import annotations

_MESSAGES: dict[str, dict[str, str]] = {
    "en": {
        "account_blocked": "Your account has been blocked. Please contact administrator.",
        "signed_out": "Logged out successfully!",
        "permission_denied": "You do not have permission to perform this action.",
        "not_signed_in": "Please sign in to continue.",
    },
    "fr": {
        "account_blocked": "Votre compte a été bloqué. Veuillez contacter l'administrateur.",
        "signed_out": "Déconnexion réussie !",
        "permission_denied": "Vous n'avez pas l'autorisation d'effectuer cette action.",
        "not_signed_in": "Veuillez vous connecter pour continuer.",
    },
    "es": {
        "account_blocked": "Su cuenta ha sido bloqueada. Póngase en contacto con el administrador.",
        "signed_out": "¡Sesión cerrada correctamente!",
        "permission_denied": "No tiene permiso para realizar esta acción.",
        "not_signed_in": "Inicie sesión para continuar.",
    },
}

DEFAULT_LOCALE = "en"


def message(key: str, locale: str = DEFAULT_LOCALE) -> str:
    # "fr-CA" falls back to "fr", unknown locales to English.
    language = (locale or DEFAULT_LOCALE).replace("_", "-").split("-")[0].lower()
    table = _MESSAGES.get(language, _MESSAGES[DEFAULT_LOCALE])
    return table.get(key, _MESSAGES[DEFAULT_LOCALE][key])
