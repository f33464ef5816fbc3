"""
# models/result.py
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Generic, TypeVar

from bookmarkops.models.exceptions import BookmarkOpsError, ErrCode

T = TypeVar("T")


@dataclass(frozen=True, slots=True)
class OperationResult(Generic[T]):
    """
    Résultat discriminé (succès / erreur) retourné par les opérations publiques.

    Aucune exception métier ne traverse la frontière appelant : l'erreur typée
    est portée par `error`.
    """

    success: bool
    data: T | None = None
    error: BookmarkOpsError | None = None

    @classmethod
    def ok(cls, data: T | None = None) -> OperationResult[T]:
        return cls(success=True, data=data)

    @classmethod
    def fail(cls, error: BookmarkOpsError) -> OperationResult[T]:
        return cls(success=False, error=error)

    @property
    def code(self) -> ErrCode | None:
        return self.error.code if self.error else None

    @property
    def message(self) -> str | None:
        return self.error.message if self.error else None

    def unwrap(self) -> T | None:
        """
        Retourne `data` ou relève l'erreur portée.
        """
        if self.error is not None:
            raise self.error
        return self.data

    def to_dict(self) -> dict[str, Any]:
        if self.success:
            return {"success": True, "data": self.data}
        assert self.error is not None
        return {
            "success": False,
            "error": self.error.message,
            "code": str(self.error.code),
            "ctx": self.error.ctx,
        }


@dataclass(frozen=True, slots=True)
class ImportResult:
    imported: int = 0
    skipped: int = 0
    invalid: int = 0
    created_folders: tuple[str, ...] = ()
