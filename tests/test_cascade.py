import pytest

from test_tree_builder import bookmark, folder

from bookmarkops.models.exceptions import PathValidationError
from bookmarkops.process_folders.cascade import plan_cascade

FOLDERS = [folder(p) for p in ("Work", "Work/AI", "Workshop", "Personal")]


def test_plan_rewrites_subtree_only():
    plan = plan_cascade(
        "Work",
        "Projects",
        FOLDERS,
        [bookmark(1, "Work/AI", "t"), bookmark(2, "Workshop", "t"), bookmark(3, None, "t")],
        operation="rename",
        now=99,
    )
    assert sorted(plan.new_folder_paths) == ["Projects", "Projects/AI"]
    assert sorted(plan.removes) == ["folder:Work", "folder:Work/AI"]
    assert [r["folder_path"] for r in plan.bookmark_puts.values()] == ["Projects/AI"]
    assert all(r["updated_at"] == 99 for r in plan.folder_puts.values())
    assert plan.folder_puts["folder:Projects/AI"]["created_at"] == 1
    assert not plan.is_empty


def test_plan_is_pure():
    before = list(FOLDERS)
    plan_cascade("Work", "Projects", FOLDERS, [], operation="rename", now=1)
    assert FOLDERS == before


def test_plan_rejects_depth_overflow():
    folders = [folder(p) for p in ("a", "a/b", "a/b/c")]
    with pytest.raises(PathValidationError):
        plan_cascade("a", "x/y/a", folders, [], operation="move", now=1)
