"""2025-10-02 - module config en lien avec env."""

# config.py
from __future__ import annotations

import os

from dotenv import load_dotenv

# Chargement du .env (surchargeable pour les tests / déploiements)
load_dotenv(os.getenv("BOOKMARKOPS_ENV_FILE", ".env"))


class ConfigError(Exception):
    """
    Erreur de configuration (.env / variables d'environnement).
    """


# --- Fonctions utilitaires ---


def get_required(key: str) -> str:
    """
    Récupère la valeur d'une variable env requise.

    Lève ConfigError si absente.
    """
    value = os.getenv(key)
    if value is None:
        raise ConfigError(f"[CONFIG ERROR] La variable {key} est requise mais absente.")
    return value


def get_bool(key: str, default: str = "false") -> bool:
    """
    Retourne la variable env convertie en booléen.
    """
    return os.getenv(key, default).lower() in ("true", "1", "yes", "y")


def get_str(key: str, default: str = "") -> str:
    """
    Retourne la variable env sous forme de chaîne.
    """
    return os.getenv(key, default)


def get_int(key: str, default: int = 0) -> int:
    """
    Retourne la variable env convertie en entier.

    Lève ConfigError si conversion impossible.
    """
    raw = os.getenv(key, str(default))
    try:
        return int(raw)
    except ValueError as exc:
        raise ConfigError(f"[CONFIG ERROR] La variable {key} doit être un entier (valeur: {raw!r}).") from exc


def get_choice(key: str, choices: tuple[str, ...], default: str) -> str:
    """
    Retourne la variable env si elle fait partie des valeurs autorisées.
    """
    value = get_str(key, default).strip().lower()
    if value not in choices:
        raise ConfigError(f"[CONFIG ERROR] La variable {key} doit valoir l'une de {choices} (valeur: {value!r}).")
    return value


# --- Variables d'environnement accessibles globalement ---

# LOGS
LOG_FILE_PATH: str = get_str("LOG_FILE_PATH", "./logs")
LOG_ROTATION_DAYS: int = get_int("LOG_ROTATION_DAYS", 30)
LOG_LEVEL: str = get_str("LOG_LEVEL", "INFO").upper()

# STORE
STORE_BACKEND: str = get_choice("STORE_BACKEND", ("json", "mysql"), "json")
STORE_PATH: str = get_str("STORE_PATH", "./data/bookmarkops.json")


# DB (lu à la demande : uniquement requis pour STORE_BACKEND=mysql)
def get_db_settings() -> dict[str, str | int]:
    """
    Paramètres de connexion MySQL lus depuis l'env.

    Lève ConfigError si une variable requise manque.
    """
    return {
        "host": get_required("DB_HOST"),
        "port": get_int("DB_PORT", 3306),
        "user": get_required("DB_USER"),
        "password": get_required("DB_PASSWORD"),
        "database": get_required("DB_NAME"),
    }


DB_TABLE: str = get_str("DB_TABLE", "kv_store")
