from test_tree_builder import bookmark, folder

from bookmarkops.process_folders.import_paths import (
    collect_import_folder_paths,
    collect_required_folder_paths,
    find_missing_folder_paths,
    resolve_import_folder_path,
)


def test_ancestors_included_parents_first():
    assert collect_required_folder_paths(["Work/AI/Deep", "Personal"]) == [
        "Personal",
        "Work",
        "Work/AI",
        "Work/AI/Deep",
    ]


def test_empty_or_invalid_paths_fall_back_to_import():
    assert collect_required_folder_paths([None, "", "  ", "../etc"]) == ["Import"]


def test_depth_is_capped():
    assert collect_required_folder_paths(["a/b/c/d/e/f"]) == ["a", "a/b", "a/b/c", "a/b/c/d"]


def test_from_bookmarks():
    marks = [bookmark(1, "Work/AI", "t"), bookmark(2, None, "t")]
    assert collect_import_folder_paths(marks) == ["Import", "Work", "Work/AI"]
    assert find_missing_folder_paths(marks, [folder("Work")]) == ["Import", "Work/AI"]


def test_invalid_segment_names_fall_back_to_import():
    assert collect_required_folder_paths(["Work/bad|name", "x" * 51]) == ["Import"]


def test_resolve_import_folder_path():
    assert resolve_import_folder_path("Work/AI") == "Work/AI"
    assert resolve_import_folder_path("/Work//AI/") == "Work/AI"
    assert resolve_import_folder_path("a/b/c/d/e") == "a/b/c/d"
    assert resolve_import_folder_path(None) == "Import"
    assert resolve_import_folder_path("../etc") == "Import"
