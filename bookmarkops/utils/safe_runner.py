"""
2025-10-02 décorateur des points d'entrée CLI.
"""

from collections.abc import Callable
from functools import wraps
import sys
import traceback
from typing import Any

from bookmarkops.models.exceptions import BookmarkOpsError


def safe_main(func: Callable[..., int | None]) -> Callable[..., int]:
    """
    Décorateur pour main : capture les exceptions et convertit en code retour.

    - BookmarkOpsError : message court (code + ctx), code retour 2.
    - toute autre exception : traceback complet, code retour 1.
    """

    @wraps(func)
    def wrapper(*args: Any, **kwargs: Any) -> int:
        try:
            rc = func(*args, **kwargs)
        except BookmarkOpsError as e:
            print(f"❌ {e} | ctx={e.ctx!r}", file=sys.stderr)
            return 2
        except Exception as e:  # pylint: disable=broad-except
            print(f"❌ Erreur capturée par safe_main: {e}", file=sys.stderr)
            traceback.print_exc(file=sys.stderr)
            return 1
        return rc or 0

    return wrapper
