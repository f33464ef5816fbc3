# bookmarkops/models/exceptions.py
from __future__ import annotations

from collections.abc import Mapping
from enum import StrEnum  # py>=3.11
from typing import Any


class ErrCode(StrEnum):
    VALIDATION = "VALIDATION"
    NOTFOUND = "NOTFOUND"
    CONFLICT = "CONFLICT"
    STORAGE = "STORAGE"
    UNEXPECTED = "UNEXPECTED"


class BookmarkOpsError(RuntimeError):
    """
    Erreur métier avec code + contexte structuré.
    """

    __slots__ = ("code", "ctx")

    default_code: ErrCode = ErrCode.UNEXPECTED

    def __init__(
        self,
        message: str,
        *,
        code: ErrCode | None = None,
        ctx: Mapping[str, Any] | None = None,
    ) -> None:
        super().__init__(message)
        self.code = code or self.default_code
        self.ctx: dict[str, Any] = dict(ctx or {})

    @property
    def message(self) -> str:
        return super().__str__()

    def with_context(self, extra: dict[str, Any]) -> BookmarkOpsError:
        # N'écrase pas ce qui existe déjà
        for k, v in extra.items():
            self.ctx.setdefault(k, v)
        return self

    def __str__(self) -> str:  # utile dans les logs
        return f"{self.code}: {super().__str__()}"


class ValidationError(BookmarkOpsError):
    """
    Règle de nom / chemin / profondeur violée. Jamais levée après une écriture.
    """

    default_code = ErrCode.VALIDATION


class PathValidationError(ValidationError):
    """
    Chemin ou segment invalide ; `rule` et `segment` identifient la règle en échec.
    """

    def __init__(self, message: str, path: object, *, rule: str, segment: str | None = None) -> None:
        super().__init__(message, ctx={"path": path, "rule": rule, "segment": segment})
        self.path = path
        self.rule = rule
        self.segment = segment


class NotFoundError(BookmarkOpsError):
    """
    Aucun enregistrement au chemin demandé.
    """

    default_code = ErrCode.NOTFOUND


class ConflictError(BookmarkOpsError):
    """
    Doublon entre frères, sous-arbre non vide, déplacement cyclique.
    """

    default_code = ErrCode.CONFLICT


class StorageError(BookmarkOpsError):
    """
    Échec du store sous-jacent ; ctx porte {operation, path, step, message}.
    """

    default_code = ErrCode.STORAGE

    def __init__(self, message: str, *, operation: str, path: str | None = None, step: str | None = None) -> None:
        super().__init__(
            message,
            ctx={"operation": operation, "path": path, "step": step, "message": message},
        )
        self.operation = operation
        self.path = path
        self.step = step
