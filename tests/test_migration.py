from conftest import run

from bookmarkops.storage.migration import MIGRATION_FLAG_KEY, is_migrated, reset_migration, run_migration_if_needed


def test_moves_unfiled_bookmarks_to_import(store, manager, bookmark_storage, make_folders, save_bookmark):
    make_folders("Work")
    save_bookmark(1)
    save_bookmark(2, "Work")

    result = run(run_migration_if_needed(store))

    assert result.migrated_count == 1 and not result.skipped
    assert run(bookmark_storage.get("https://chat.example.com/c/1", 1)).folder_path == "Import"
    assert run(bookmark_storage.get("https://chat.example.com/c/1", 1)).platform == "ChatGPT"
    assert run(bookmark_storage.get("https://chat.example.com/c/1", 2)).folder_path == "Work"
    assert [f.path for f in run(manager.list_folders()).unwrap()] == ["Import", "Work"]
    assert run(is_migrated(store))


def test_runs_only_once(store, save_bookmark):
    run(run_migration_if_needed(store))
    save_bookmark(5)
    assert run(run_migration_if_needed(store)).skipped


def test_reset(store):
    run(run_migration_if_needed(store))
    run(reset_migration(store))
    assert run(store.get(MIGRATION_FLAG_KEY)) is None
    assert not run(run_migration_if_needed(store)).skipped
