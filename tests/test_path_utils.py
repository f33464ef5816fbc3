import pytest

from bookmarkops.models.exceptions import ErrCode, PathValidationError
from bookmarkops.utils.path_utils import (
    MAX_DEPTH,
    are_equal,
    collation_key,
    generate_auto_rename_name,
    get_ancestors,
    get_depth,
    get_folder_name,
    get_folder_name_validation,
    get_parent_path,
    has_name_conflict,
    is_descendant_of,
    is_valid_folder_name,
    join,
    normalize,
    normalize_folder_name,
    update_path_prefix,
    validate_path,
)

VALID_PATHS = ["Work", "Work/AI", "Work/AI/ChatGPT", "a/b/c/d", "Café/Ünïcode", "Work: notes"]


class TestNormalize:
    @pytest.mark.parametrize("raw, expected", [
        ("Work//AI", "Work/AI"),
        ("/Work/AI/", "Work/AI"),
        ("///Work///AI///", "Work/AI"),
        ("Work", "Work"),
    ])
    def test_collapses_and_strips_separators(self, raw, expected):
        assert normalize(raw) == expected

    @pytest.mark.parametrize("path", VALID_PATHS)
    def test_idempotent(self, path):
        assert normalize(normalize(path)) == normalize(path)

    @pytest.mark.parametrize("raw", ["../etc", "Work/../Other", "Work/..", " .. /x"])
    def test_rejects_traversal_instead_of_stripping(self, raw):
        with pytest.raises(PathValidationError) as exc_info:
            normalize(raw)
        assert exc_info.value.rule == "traversal"
        assert exc_info.value.code == ErrCode.VALIDATION

    def test_dots_inside_a_name_are_allowed(self):
        assert normalize("Work../v1.2") == "Work../v1.2"

    @pytest.mark.parametrize("raw", ["", None, 42])
    def test_rejects_empty_or_non_string(self, raw):
        with pytest.raises(PathValidationError):
            normalize(raw)


class TestDecompose:
    def test_parent_of_nested_path(self):
        assert get_parent_path("Work/AI/ChatGPT") == "Work/AI"

    def test_root_level_has_no_parent(self):
        assert get_parent_path("Work") is None
        assert get_parent_path("") is None

    def test_name_and_depth(self):
        assert get_folder_name("Work/AI") == "AI"
        assert get_folder_name("") == ""
        assert get_depth("Work/AI") == 2
        assert get_depth("Work") == 1
        assert get_depth("") == 0

    def test_ancestors(self):
        assert get_ancestors("Work/AI/ChatGPT") == ["Work", "Work/AI"]
        assert get_ancestors("Work") == []

    def test_are_equal_normalizes(self):
        assert are_equal("/Work//AI/", "Work/AI")
        assert not are_equal("Work", "")
        assert are_equal("", "")


class TestDescendants:
    @pytest.mark.parametrize("path", VALID_PATHS)
    def test_path_is_never_its_own_descendant(self, path):
        assert not is_descendant_of(path, path)

    @pytest.mark.parametrize("path", VALID_PATHS)
    def test_joined_child_is_descendant(self, path):
        # join refuse un segment contenant "/" : on repart des segments
        assert is_descendant_of(join(*path.split("/"), "x"), path)

    def test_prefix_without_separator_is_not_descendant(self):
        assert not is_descendant_of("Workshop", "Work")

    def test_empty_inputs(self):
        assert not is_descendant_of("", "Work")
        assert not is_descendant_of("Work/AI", "")


class TestJoin:
    def test_joins_and_skips_blank_segments(self):
        assert join("Work", "", "  ", "AI") == "Work/AI"
        assert join() == ""

    def test_rejects_embedded_separator(self):
        with pytest.raises(PathValidationError) as exc_info:
            join("Work", "AI/ChatGPT")
        assert exc_info.value.rule == "separator"
        assert exc_info.value.segment == "AI/ChatGPT"

    def test_rejects_parent_reference(self):
        with pytest.raises(PathValidationError) as exc_info:
            join("Work", "..")
        assert exc_info.value.rule == "traversal"


class TestUpdatePathPrefix:
    def test_exact_match(self):
        assert update_path_prefix("Work", "Projects", "Work") == "Projects"

    def test_descendant(self):
        assert update_path_prefix("Work", "Projects", "Work/AI/ChatGPT") == "Projects/AI/ChatGPT"

    def test_unrelated_paths_unchanged(self):
        assert update_path_prefix("Work", "Projects", "Workshop/AI") == "Workshop/AI"
        assert update_path_prefix("Work", "Projects", "Personal") == "Personal"


class TestNames:
    @pytest.mark.parametrize("name", ["Work", "a", "x" * 50, "Notes: 2024", "Café"])
    def test_valid_names(self, name):
        assert is_valid_folder_name(name)

    @pytest.mark.parametrize("name", ["", "   ", "x" * 51, "a/b", "a\\b", "tab\there", "a<b", 'q"', "a|b", "a?", "a*", ".."])
    def test_invalid_names(self, name):
        assert not is_valid_folder_name(name)

    def test_normalize_folder_name_reports_changes(self):
        result = normalize_folder_name("  My   /Folder ")
        assert result.value == "My Folder"
        assert result.removed_slash
        assert result.collapsed_spaces
        assert result.trimmed

    def test_folder_name_validation_errors(self):
        assert get_folder_name_validation("   ").errors == ("empty",)
        assert get_folder_name_validation("x" * 60).errors == ("too_long",)
        assert get_folder_name_validation("a<b").errors == ("forbidden_chars",)
        assert get_folder_name_validation("..").errors == ("traversal",)
        ok = get_folder_name_validation(" Work ")
        assert ok.is_valid and ok.normalized == "Work"

    def test_name_conflict_is_case_and_accent_insensitive(self):
        assert has_name_conflict("work", ["Work", "Personal"])
        assert has_name_conflict("Cafe", ["Café"])
        assert has_name_conflict("My  Folder", ["my folder"])
        assert not has_name_conflict("Works", ["Work"])

    def test_auto_rename(self):
        assert generate_auto_rename_name("Work", []) == "Work"
        assert generate_auto_rename_name("Work", ["Work"]) == "Work-1"
        assert generate_auto_rename_name("Work", ["work", "Work-1"]) == "Work-2"

    def test_auto_rename_respects_max_length(self):
        base = "x" * 50
        renamed = generate_auto_rename_name(base, [base])
        assert len(renamed) == 50
        assert renamed.endswith("-1")


class TestValidatePath:
    @pytest.mark.parametrize("path", VALID_PATHS)
    def test_valid_paths_pass(self, path):
        validate_path(path)

    def test_max_depth_passes_and_one_more_fails(self):
        validate_path("/".join(["a"] * MAX_DEPTH))
        with pytest.raises(PathValidationError) as exc_info:
            validate_path("/".join(["a"] * (MAX_DEPTH + 1)))
        assert exc_info.value.rule == "depth"

    def test_names_failing_segment(self):
        with pytest.raises(PathValidationError) as exc_info:
            validate_path("Work/" + "x" * 51)
        assert exc_info.value.rule == "name"
        assert exc_info.value.segment == "x" * 51

    @pytest.mark.parametrize("path", ["Work/ AI", " Work", "Work/AI "])
    def test_accepts_segments_valid_after_trim(self, path):
        assert all(is_valid_folder_name(s) for s in path.split("/"))
        validate_path(path)

    def test_rejects_separator_only(self):
        with pytest.raises(PathValidationError) as exc_info:
            validate_path("///")
        assert exc_info.value.rule == "empty"


def test_collation_key_orders_case_and_accent_insensitively():
    names = ["beta", "Alpha", "éclair", "Delta"]
    assert sorted(names, key=collation_key) == ["Alpha", "beta", "Delta", "éclair"]
