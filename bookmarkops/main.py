"""
# main.py

CLI de gestion des dossiers de favoris.

Exemples :
    python -m bookmarkops.main create Work
    python -m bookmarkops.main create AI --parent Work
    python -m bookmarkops.main rename Work Projects
    python -m bookmarkops.main tree --format yaml
    python -m bookmarkops.main reconcile --apply
    python -m bookmarkops.main export --output backup.json
    python -m bookmarkops.main import backup.json --skip-duplicates
"""

from __future__ import annotations

import argparse
import asyncio
from dataclasses import asdict
import json
from pathlib import Path
import sys
from typing import Any

import yaml

from bookmarkops.models.exceptions import ValidationError
from bookmarkops.models.tree import FolderTreeNode, SortMode
from bookmarkops.process_folders.folder_operations import FolderOperationsManager
from bookmarkops.services.reconcile_service import reconcile
from bookmarkops.state.folder_state import FolderState
from bookmarkops.storage.migration import run_migration_if_needed
from bookmarkops.store.factory import open_store
from bookmarkops.store.json_store import write_text_atomic
from bookmarkops.store.kv_store import KeyValueStore
from bookmarkops.tree.tree_builder import count_bookmarks, filter_tree, tree_to_dict
from bookmarkops.utils.config import STORE_BACKEND, STORE_PATH
from bookmarkops.utils.logger import get_logger
from bookmarkops.utils.safe_runner import safe_main

logger = get_logger("bookmarkops")


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Dossiers de favoris sur un store clé-valeur")
    parser.add_argument("--backend", choices=("json", "mysql"), default=STORE_BACKEND, help="Backend du store")
    parser.add_argument("--store-path", default=STORE_PATH, help="Fichier JSON (backend json)")
    sub = parser.add_subparsers(dest="command", required=True)

    sub.add_parser("list", help="Lister les dossiers")

    p_tree = sub.add_parser("tree", help="Afficher l'arbre")
    p_tree.add_argument("--format", choices=("text", "yaml", "json"), default="text")
    p_tree.add_argument("--search", default="", help="Filtrer par nom / contenu")
    p_tree.add_argument("--sort", choices=[m.value for m in SortMode], default=SortMode.ALPHA_ASC.value)

    p_create = sub.add_parser("create", help="Créer un dossier")
    p_create.add_argument("name")
    p_create.add_argument("--parent", default=None, help="Dossier parent (racine si absent)")

    p_rename = sub.add_parser("rename", help="Renommer un dossier (cascade)")
    p_rename.add_argument("path")
    p_rename.add_argument("new_name")

    p_move = sub.add_parser("move", help="Déplacer un dossier (cascade)")
    p_move.add_argument("source")
    p_move.add_argument("--to", dest="target", default=None, help="Nouveau parent (racine si absent)")

    p_delete = sub.add_parser("delete", help="Supprimer un dossier vide")
    p_delete.add_argument("path")

    p_bookmark = sub.add_parser("bookmark", help="Enregistrer un favori")
    p_bookmark.add_argument("url")
    p_bookmark.add_argument("position", type=int)
    p_bookmark.add_argument("message")
    p_bookmark.add_argument("--folder", default=None)
    p_bookmark.add_argument("--title", default=None)

    p_assign = sub.add_parser("assign", help="Changer le dossier d'un favori")
    p_assign.add_argument("url")
    p_assign.add_argument("position", type=int)
    p_assign.add_argument("folder")

    p_reconcile = sub.add_parser("reconcile", help="Audit / réparation de l'index")
    p_reconcile.add_argument("--apply", action="store_true", help="Appliquer les corrections (sinon dry-run)")
    p_reconcile.add_argument("--create-missing", action="store_true", help="Créer les dossiers manquants")

    p_export = sub.add_parser("export", help="Exporter les favoris en JSON")
    p_export.add_argument("--output", default=None, help="Fichier de sortie (stdout si absent)")

    p_import = sub.add_parser("import", help="Importer un export JSON")
    p_import.add_argument("file")
    p_import.add_argument("--skip-duplicates", action="store_true", help="Ne pas écraser les favoris existants")

    p_delete_bm = sub.add_parser("delete-bookmarks", help="Supprimer des favoris (<url>:<position>)")
    p_delete_bm.add_argument("keys", nargs="+")

    p_positions = sub.add_parser("positions", help="Positions enregistrées pour une URL")
    p_positions.add_argument("url")

    sub.add_parser("migrate", help="Rattacher les favoris sans dossier à Import")
    return parser.parse_args(argv)


def _render_text(nodes: tuple[FolderTreeNode, ...], indent: int = 0) -> list[str]:
    lines: list[str] = []
    for node in nodes:
        marker = "*" if node.is_selected else "-"
        lines.append(f"{'  ' * indent}{marker} {node.folder.name}/ ({count_bookmarks((node,))})")
        for bookmark in node.bookmarks:
            lines.append(f"{'  ' * (indent + 1)}· {bookmark.title}")
        lines.extend(_render_text(node.children, indent + 1))
    return lines


def _read_import_file(path: str) -> Any:
    try:
        return json.loads(Path(path).read_text(encoding="utf-8"))
    except (OSError, ValueError) as exc:
        raise ValidationError(f"Fichier d'import illisible: {exc}", ctx={"file": path}) from exc


async def run(args: argparse.Namespace, store: KeyValueStore) -> Any:
    manager = FolderOperationsManager(store, logger=logger)
    state = FolderState(store, logger=logger)
    await state.load()
    manager.on_folder_event(state.handle_folder_event)

    match args.command:
        case "list":
            return [f.path for f in (await manager.list_folders()).unwrap() or []]
        case "tree":
            tree = (await manager.load_tree(state.expanded_paths, state.selected_path, args.sort)).unwrap() or ()
            tree = filter_tree(tree, args.search)
            if args.format == "yaml":
                return yaml.safe_dump(tree_to_dict(tree), allow_unicode=True, sort_keys=False)
            if args.format == "json":
                return json.dumps(tree_to_dict(tree), ensure_ascii=False, indent=2)
            return "\n".join(_render_text(tree))
        case "create":
            folder = (await manager.create_folder(args.parent, args.name)).unwrap()
            return folder.path if folder else None
        case "rename":
            return (await manager.rename_folder(args.path, args.new_name)).unwrap()
        case "move":
            return (await manager.move_folder(args.source, args.target)).unwrap()
        case "delete":
            return (await manager.delete_folder(args.path)).unwrap()
        case "bookmark":
            saved = (
                await manager.save_bookmark(args.url, args.position, args.message, folder_path=args.folder, title=args.title)
            ).unwrap()
            return saved.key if saved else None
        case "assign":
            assigned = (await manager.assign_bookmark_folder(args.url, args.position, args.folder)).unwrap()
            return assigned.folder_path if assigned else None
        case "reconcile":
            diffs = await reconcile(store, apply=args.apply, create_missing_folders=args.create_missing, logger=logger)
            return yaml.safe_dump(asdict(diffs), allow_unicode=True, sort_keys=False)
        case "migrate":
            result = await run_migration_if_needed(store, logger=logger)
            return {"skipped": result.skipped, "migrated": result.migrated_count}
        case "export":
            records = (await manager.export_bookmarks()).unwrap() or []
            data = json.dumps(records, ensure_ascii=False, indent=2)
            if args.output is None:
                return data
            write_text_atomic(Path(args.output), data)
            return {"exported": len(records), "file": args.output}
        case "import":
            records = _read_import_file(args.file)
            report = (await manager.import_bookmarks(records, skip_duplicates=args.skip_duplicates)).unwrap()
            return asdict(report) if report else None
        case "delete-bookmarks":
            return {"deleted": (await manager.delete_bookmarks(args.keys)).unwrap()}
        case "positions":
            return (await manager.bookmarked_positions(args.url)).unwrap()
    return None


@safe_main
def main(argv: list[str] | None = None) -> int:
    args = parse_args(argv)
    store = open_store(args.backend, args.store_path, logger=logger)
    output = asyncio.run(run(args, store))
    if output is not None:
        print(output if isinstance(output, str) else json.dumps(output, ensure_ascii=False))
    return 0


if __name__ == "__main__":
    sys.exit(main())
