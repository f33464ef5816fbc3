from bookmarkops.models.folder_index import FolderIndex


def test_from_value_ignores_unreadable_values():
    assert len(FolderIndex.from_value(None)) == 0
    assert len(FolderIndex.from_value({"a": 1})) == 0
    assert FolderIndex.from_value(["Work", 3, "", "Work/AI"]).paths == ("Work", "Work/AI")


def test_add_and_remove_return_new_index():
    index = FolderIndex(("Work",))
    grown = index.add("Work/AI")
    assert index.paths == ("Work",)
    assert grown.paths == ("Work", "Work/AI")
    assert grown.add("Work") is grown
    assert grown.remove("Work").paths == ("Work/AI",)


def test_rewrite_prefix_matches_record_rewrite():
    index = FolderIndex(("Work", "Work/AI", "Workshop", "Personal"))
    assert index.rewrite_prefix("Work", "Projects").paths == ("Projects", "Projects/AI", "Workshop", "Personal")


def test_rewrite_prefix_drops_resulting_duplicates():
    index = FolderIndex(("A", "B", "B/x"))
    assert index.rewrite_prefix("B", "A").paths == ("A", "A/x")


def test_diff_reports_missing_ghosts_duplicates():
    index = FolderIndex(("Work", "Ghost", "Work"))
    diff = index.diff(["Work", "Personal"])
    assert diff.missing == ("Personal",)
    assert diff.ghosts == ("Ghost",)
    assert diff.duplicates == ("Work",)
    assert not diff.is_clean


def test_reconcile_rebuilds_sorted_from_records():
    index = FolderIndex(("Ghost", "b", "b"))
    rebuilt = index.reconcile(["b", "A", "A/x"])
    assert rebuilt.paths == ("A", "A/x", "b")
    assert rebuilt.diff(["b", "A", "A/x"]).is_clean
