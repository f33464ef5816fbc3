"""2025-10-02 - logger du projet."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
import functools
import logging
import logging.handlers
import os
from typing import Any, Optional, ParamSpec, Protocol, TypeVar, cast

from bookmarkops.utils.config import LOG_FILE_PATH, LOG_LEVEL, LOG_ROTATION_DAYS
from bookmarkops.utils.log_rotation import rotate_logs

GLOBAL_LOG_NAME = "bookmarkops.log"


# ---------- Protocole (contrat) ----------
class LoggerProtocol(Protocol):
    """
    Interface minimale attendue par les modules (services, stockage, arbre).

    Tout objet exposant ces méthodes peut être injecté via le kwarg `logger=`.
    """

    def debug(self, msg: str, *args: object, **kwargs: Any) -> None: ...

    def info(self, msg: str, *args: object, **kwargs: Any) -> None: ...

    def warning(self, msg: str, *args: object, **kwargs: Any) -> None: ...

    def error(self, msg: str, *args: object, **kwargs: Any) -> None: ...

    def exception(self, msg: str, *args: object, **kwargs: Any) -> None: ...

    def get_child(self, suffix: str) -> LoggerProtocol: ...


# ---------- Classe concrète (instanciable) ----------


@dataclass(frozen=True)
class BookmarkOpsLogger:
    """
    Enveloppe fine autour d'un `logging.Logger`.

    Expose la même API que LoggerProtocol et permet de dériver des loggers
    enfants (`get_child`) sans ré-attacher de handlers.
    """

    _base: logging.Logger

    def debug(self, msg: str, *args: object, **kwargs: Any) -> None:
        self._base.debug(msg, *args, **kwargs)

    def info(self, msg: str, *args: object, **kwargs: Any) -> None:
        self._base.info(msg, *args, **kwargs)

    def warning(self, msg: str, *args: object, **kwargs: Any) -> None:
        self._base.warning(msg, *args, **kwargs)

    def error(self, msg: str, *args: object, **kwargs: Any) -> None:
        self._base.error(msg, *args, **kwargs)

    def exception(self, msg: str, *args: object, **kwargs: Any) -> None:
        self._base.exception(msg, *args, **kwargs)

    def get_child(self, suffix: str) -> LoggerProtocol:
        """
        Logger enfant `<nom>.<suffix>` (hérite des handlers du parent).
        """
        return BookmarkOpsLogger(self._base.getChild(suffix))

    @property
    def name(self) -> str:
        return self._base.name


def _ensure_handlers(base: logging.Logger, global_log_file: str, script_log_file: str) -> None:
    if getattr(base, "_bookmarkops_configured", False):
        return

    formatter = logging.Formatter("%(asctime)s - %(levelname)s - [%(name)s] %(message)s")

    stream = logging.StreamHandler()
    stream.setFormatter(formatter)
    base.addHandler(stream)

    # Log global + log par script : rotation quotidienne à minuit, 14 jours
    for filename in (global_log_file, script_log_file):
        handler = logging.handlers.TimedRotatingFileHandler(
            filename=filename,
            when="midnight",
            backupCount=14,
            encoding="utf-8",
        )
        handler.setFormatter(formatter)
        base.addHandler(handler)

    # Évite double impression si root a des handlers
    base.propagate = False

    setattr(base, "_bookmarkops_configured", True)


def get_logger(script_name: str) -> LoggerProtocol:
    """
    Constructeur de logger.

    Crée le dossier de logs si besoin, purge les vieux fichiers puis attache
    (une seule fois) les handlers console + fichiers.

    :param script_name: Nom du script / module.
    :return: Logger prêt à l'emploi.
    """
    os.makedirs(LOG_FILE_PATH, exist_ok=True)
    global_log_file = os.path.join(LOG_FILE_PATH, GLOBAL_LOG_NAME)
    script_log_file = os.path.join(LOG_FILE_PATH, f"{script_name}.log")

    base = logging.getLogger(script_name)
    base.setLevel(getattr(logging, LOG_LEVEL, logging.INFO))

    try:
        rotate_logs(LOG_FILE_PATH, LOG_ROTATION_DAYS, logf=script_log_file)
    except OSError as exc:
        _ensure_handlers(base, global_log_file, script_log_file)
        BookmarkOpsLogger(base).warning("Rotation des logs échouée: %s", exc)

    _ensure_handlers(base, global_log_file, script_log_file)
    return BookmarkOpsLogger(base)


# ---------- Utilities ----------
def ensure_logger(logger: LoggerProtocol | None, module: str) -> LoggerProtocol:
    """
    Retourne le logger fourni, ou en construit un pour `module`.
    """
    if logger is None:
        return get_logger(module)
    return logger


# ---------- Décorateur type-safe ----------
P = ParamSpec("P")
R = TypeVar("R")


def with_child_logger(func: Callable[P, R]) -> Callable[P, R]:
    """
    Injecte un logger enfant `<module>.<fonction>` si l'appelant n'en fournit pas.

    Fonctionne aussi pour les coroutines : le wrapper ne fait que compléter les
    kwargs puis retourne ce que renvoie la fonction décorée.
    """

    @functools.wraps(func)
    def wrapper(*args: P.args, **kwargs: P.kwargs) -> R:
        current = cast(Optional[LoggerProtocol], kwargs.get("logger"))
        if current is None:
            base = ensure_logger(current, func.__module__)
            kwargs["logger"] = _get_or_child(base, func.__name__)
        # Sinon on ne touche pas au logger transmis (pas d'empilement)
        return func(*args, **kwargs)

    return wrapper


def _get_or_child(logger: LoggerProtocol, suffix: str) -> LoggerProtocol:
    base_name = getattr(logger, "name", "")
    if base_name.endswith(f".{suffix}") or base_name == suffix:
        return logger
    return logger.get_child(suffix)
