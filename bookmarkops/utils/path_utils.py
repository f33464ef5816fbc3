"""
Helpers chemins de dossiers (purs, sans I/O).

Un chemin est une suite de segments joints par "/", sans séparateur initial ni
final une fois normalisé. Profondeur = nombre de segments (1 pour la racine).

Sécurité :
- le segment ".." est refusé, jamais retiré silencieusement ;
- chaque segment est validé isolément avant concaténation (join) ;
- profondeur bornée par MAX_DEPTH.
"""

# utils/path_utils.py
from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field
import re
import unicodedata

from bookmarkops.models.exceptions import PathValidationError

SEPARATOR = "/"
MAX_DEPTH = 4
MAX_NAME_LENGTH = 50
PARENT_REF = ".."

# séparateur, antislash, caractères de contrôle et réservés
_FORBIDDEN_CHARS = re.compile(r'[/\\\x00-\x1f\x7f<>"|?*]')
_MULTI_SPACES = re.compile(r"\s{2,}")

# Sentinelle "pas de parent" (dossier racine) : distincte de tout chemin réel
ROOT: None = None


@dataclass(frozen=True, slots=True)
class NameNormalization:
    value: str
    trimmed: bool = False
    collapsed_spaces: bool = False
    removed_slash: bool = False


@dataclass(frozen=True, slots=True)
class FolderNameValidation:
    normalized: str
    normalization: NameNormalization
    is_valid: bool
    errors: tuple[str, ...] = field(default_factory=tuple)


def _is_parent_ref(segment: str) -> bool:
    return segment.strip() == PARENT_REF


def normalize(path: str) -> str:
    """
    Normalise un chemin : séparateurs multiples fusionnés, séparateurs de tête
    et de fin retirés.

    Lève PathValidationError si l'entrée est vide / non-str ou contient un
    segment "..".
    """
    if not isinstance(path, str) or not path:
        raise PathValidationError("Path must be a non-empty string", path, rule="empty")

    segments = path.split(SEPARATOR)
    for segment in segments:
        if _is_parent_ref(segment):
            raise PathValidationError(
                "Path contains directory traversal sequence (..)", path, rule="traversal", segment=segment
            )

    return SEPARATOR.join(s for s in segments if s)


def get_parent_path(path: str) -> str | None:
    """
    "Work/AI" -> "Work" ; "Work" -> None (racine) ; "" -> None.
    """
    if not path:
        return ROOT
    parent, sep, _ = normalize(path).rpartition(SEPARATOR)
    return parent if sep else ROOT


def get_folder_name(path: str) -> str:
    """
    Dernier segment du chemin ("" pour un chemin vide).
    """
    if not path:
        return ""
    return normalize(path).rpartition(SEPARATOR)[2]


def get_depth(path: str) -> int:
    if not path:
        return 0
    normalized = normalize(path)
    if not normalized:
        return 0
    return normalized.count(SEPARATOR) + 1


def is_descendant_of(child_path: str, parent_path: str) -> bool:
    """
    Vrai ssi child commence par parent + "/". Un chemin n'est jamais son propre descendant.
    """
    if not child_path or not parent_path:
        return False
    return normalize(child_path).startswith(normalize(parent_path) + SEPARATOR)


def is_same_or_descendant(path: str, root: str) -> bool:
    return are_equal(path, root) or is_descendant_of(path, root)


def join(*segments: str) -> str:
    """
    Concatène des segments après validation individuelle.

    Les segments vides sont ignorés ; un segment contenant "/" ou égal à ".."
    lève PathValidationError.
    """
    valid = [s for s in segments if s and s.strip()]
    if not valid:
        return ""

    for segment in valid:
        if _is_parent_ref(segment):
            raise PathValidationError(
                "Path segment contains directory traversal sequence (..)",
                segment,
                rule="traversal",
                segment=segment,
            )
        if SEPARATOR in segment:
            raise PathValidationError("Path segment cannot contain separator", segment, rule="separator", segment=segment)

    return normalize(SEPARATOR.join(valid))


def update_path_prefix(old_prefix: str, new_prefix: str, path: str) -> str:
    """
    Remplace le préfixe old par new (correspondance exacte ou old + "/").

    Les chemins sans rapport sont retournés inchangés (normalisés).
    """
    if not path:
        return path

    normalized = normalize(path)
    old_n = normalize(old_prefix)
    new_n = normalize(new_prefix)

    if normalized == old_n:
        return new_n
    if normalized.startswith(old_n + SEPARATOR):
        return new_n + normalized[len(old_n) :]
    return normalized


def get_ancestors(path: str) -> list[str]:
    """
    "Work/AI/ChatGPT" -> ["Work", "Work/AI"].
    """
    if not path:
        return []
    segments = normalize(path).split(SEPARATOR)
    return [SEPARATOR.join(segments[:i]) for i in range(1, len(segments))]


def are_equal(path1: str, path2: str) -> bool:
    if not path1 and not path2:
        return True
    if not path1 or not path2:
        return False
    return normalize(path1) == normalize(path2)


# --- Noms de dossiers ----------------------------------------------------------


def is_valid_folder_name(name: str) -> bool:
    """
    1 à MAX_NAME_LENGTH caractères (après trim), aucun caractère interdit, pas "..".
    """
    if not isinstance(name, str):
        return False
    trimmed = name.strip()
    if not trimmed or len(trimmed) > MAX_NAME_LENGTH:
        return False
    if _FORBIDDEN_CHARS.search(trimmed):
        return False
    return trimmed != PARENT_REF


def validate_path(path: str) -> None:
    """
    Validation complète : structure, profondeur, chaque segment.

    Lève PathValidationError (rule = empty | traversal | depth | name).
    """
    normalized = normalize(path)
    if not normalized:
        raise PathValidationError("Path must contain at least one segment", path, rule="empty")

    segments = normalized.split(SEPARATOR)
    if len(segments) > MAX_DEPTH:
        raise PathValidationError(f"Path depth {len(segments)} exceeds maximum {MAX_DEPTH}", path, rule="depth")

    for i, segment in enumerate(segments, start=1):
        if not is_valid_folder_name(segment):
            raise PathValidationError(
                f'Invalid folder name at depth {i}: "{segment}"', path, rule="name", segment=segment
            )


def normalize_folder_name(name: str) -> NameNormalization:
    """
    Nettoie une saisie utilisateur : retire "/", fusionne les espaces, trim.
    """
    removed_slash = SEPARATOR in name
    value = name.replace(SEPARATOR, "")
    collapsed = _MULTI_SPACES.sub(" ", value)
    trimmed = collapsed.strip()
    return NameNormalization(
        value=trimmed,
        trimmed=trimmed != collapsed,
        collapsed_spaces=collapsed != value,
        removed_slash=removed_slash,
    )


def get_folder_name_validation(name: str) -> FolderNameValidation:
    norm = normalize_folder_name(name)
    errors: list[str] = []
    if not norm.value:
        errors.append("empty")
    if len(norm.value) > MAX_NAME_LENGTH:
        errors.append("too_long")
    if _FORBIDDEN_CHARS.search(norm.value):
        errors.append("forbidden_chars")
    if norm.value == PARENT_REF:
        errors.append("traversal")
    return FolderNameValidation(
        normalized=norm.value,
        normalization=norm,
        is_valid=not errors,
        errors=tuple(errors),
    )


def _fold(text: str) -> str:
    # insensible à la casse et aux accents (équivalent localeCompare "base")
    decomposed = unicodedata.normalize("NFKD", text)
    return "".join(c for c in decomposed if not unicodedata.combining(c)).casefold()


def collation_key(text: str) -> tuple[str, str]:
    """
    Clé de tri déterministe : comparaison pliée d'abord, texte brut en départage.
    """
    return (_fold(text), text)


def _name_key(name: str) -> str:
    return _fold(normalize_folder_name(name).value)


def has_name_conflict(name: str, existing_names: Iterable[str]) -> bool:
    key = _name_key(name)
    return any(_name_key(existing) == key for existing in existing_names)


def generate_auto_rename_name(name: str, existing_names: Iterable[str]) -> str:
    """
    Premier nom libre parmi "Name", "Name-1", "Name-2"... (≤ MAX_NAME_LENGTH).
    """
    base = normalize_folder_name(name).value
    taken = {_name_key(n) for n in existing_names}
    if _name_key(base) not in taken:
        return base

    counter = 1
    while True:
        suffix = f"-{counter}"
        candidate = base[: MAX_NAME_LENGTH - len(suffix)] + suffix
        if _name_key(candidate) not in taken:
            return candidate
        counter += 1
