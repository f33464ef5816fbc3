"""2025-10-02 - module rotation de logs."""

from __future__ import annotations

from pathlib import Path
import time


def rotate_logs(log_dir: str, keep_days: int = 30, logf: str | None = None) -> int:
    """
    Supprime les fichiers `*.log*` de log_dir plus vieux que keep_days.

    Les actions sont tracées dans logf si fourni. Retourne le nombre de
    fichiers supprimés.
    """
    cutoff = time.time() - (keep_days * 86400)
    removed = 0

    def log(message: str) -> None:
        if logf:
            with open(logf, "a", encoding="utf-8") as f:
                f.write(f"{message}\n")

    root = Path(log_dir)
    if not root.is_dir():
        log(f"[LOG ROTATION] Dossier de logs introuvable : {log_dir}")
        return 0

    for filepath in root.iterdir():
        if not filepath.is_file() or ".log" not in filepath.name:
            continue
        if filepath.stat().st_mtime >= cutoff:
            continue
        try:
            filepath.unlink()
            removed += 1
            log(f"[LOG ROTATION] Supprimé : {filepath}")
        except OSError as e:
            log(f"[LOG ROTATION] Erreur suppression {filepath} : {e}")
    return removed
