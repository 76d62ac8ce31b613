import re

import pytest

from dvfs import Directory, VPath
from tests.helpers.asserts import assert_no_empty_folders


@pytest.fixture
def tree():
    root = Directory()
    root.insert_bytes("apple.txt", b"a")
    root.insert_bytes("fruit/banana.txt", b"b")
    root.insert_bytes("fruit/app.log", b"l")
    root.insert_bytes("fruit/dried/apricot.txt", b"ap")
    root.create_folder("empty/also_empty")
    return root


# ------------------------------------------------------------------
# count_files / count_folders
# ------------------------------------------------------------------


def test_count_files_recursive(tree):
    assert tree.count_files() == 4
    assert tree.lookup_folder("fruit").count_files() == 3
    assert tree.lookup_folder("empty").count_files() == 0


def test_count_folders(tree):
    assert tree.count_folders() == 4


def test_count_ignores_aliases(tree):
    dried = tree.lookup_folder("fruit/dried")
    assert dried.count_files() == 1


# ------------------------------------------------------------------
# regex search
# ------------------------------------------------------------------


def test_count_files_matching_full_match():
    root = Directory()
    root.insert_bytes("apple.txt", b"")
    root.insert_bytes("banana.txt", b"")
    root.insert_bytes("app.log", b"")
    assert root.count_files_matching(r"a.*\.txt") == 1


def test_matching_is_not_substring(tree):
    assert tree.count_files_matching("app") == 0
    assert tree.count_files_matching("app.*") == 2


def test_matching_tests_name_only(tree):
    assert tree.count_files_matching(r"fruit/.*") == 0


def test_collect_agrees_with_count(tree):
    for pattern in (".*", r".*\.txt", "a.*", "zzz", r"ap.*\.(txt|log)"):
        found = tree.collect_files_matching(pattern)
        assert len(found) == tree.count_files_matching(pattern)


def test_collect_returns_entries(tree):
    names = sorted(e.name for e in tree.collect_files_matching(r"ap.*"))
    assert names == ["app.log", "apple.txt", "apricot.txt"]


def test_compiled_pattern_accepted(tree):
    assert tree.count_files_matching(re.compile(r".*\.log")) == 1


def test_count_equals_collect_all(tree):
    assert tree.count_files() == len(tree.collect_files_matching(".*"))


# ------------------------------------------------------------------
# prune
# ------------------------------------------------------------------


def test_prune_removes_empty_folders(tree):
    removed = tree.prune()
    assert removed == 2
    assert tree.lookup_folder("empty") is None
    assert tree.lookup_folder("fruit/dried") is not None
    assert tree.count_files() == 4
    assert_no_empty_folders(tree)


def test_prune_keeps_root_even_if_empty():
    root = Directory()
    root.create_folder("a/b/c")
    assert root.prune() == 3
    assert root.listdir() == []
    assert root.prune() == 0


def test_prune_removes_branch_whose_only_files_were_removed(tree):
    tree.remove_file("fruit/dried/apricot.txt")
    tree.prune()
    assert tree.lookup_folder("fruit/dried") is None
    assert tree.lookup_folder("fruit") is not None


def test_prune_on_subfolder_only_touches_children(tree):
    empty = tree.lookup_folder("empty")
    assert empty.prune() == 1
    assert tree.lookup_folder("empty") is empty


def test_after_prune_every_folder_has_files(tree):
    tree.prune()
    for path, _, _ in tree.walk():
        if path:
            assert tree.lookup_folder(path).count_files() > 0


# ------------------------------------------------------------------
# walk / iter_files
# ------------------------------------------------------------------


def test_walk_top_down(tree):
    entries = list(tree.walk())
    assert entries[0] == (VPath(""), ["fruit", "empty"], ["apple.txt"])
    paths = [p for p, _, _ in entries]
    assert paths.index(VPath("fruit")) < paths.index(VPath("fruit/dried"))
    assert set(paths) == {
        VPath(""),
        VPath("fruit"),
        VPath("fruit/dried"),
        VPath("empty"),
        VPath("empty/also_empty"),
    }


def test_iter_files_paths(tree):
    paths = {str(p) for p, _ in tree.iter_files()}
    assert paths == {
        "apple.txt",
        "fruit/banana.txt",
        "fruit/app.log",
        "fruit/dried/apricot.txt",
    }


def test_iter_files_relative_to_subfolder(tree):
    paths = {str(p) for p, _ in tree.lookup_folder("fruit").iter_files()}
    assert "dried/apricot.txt" in paths


# ------------------------------------------------------------------
# render_tree
# ------------------------------------------------------------------


def test_render_tree_format(tree):
    lines = list(tree.render_tree())
    assert lines == [
        "fruit/",
        " |-dried/",
        " | |-apricot.txt",
        " |-banana.txt",
        " |-app.log",
        "empty/",
        " |-also_empty/",
        "apple.txt",
    ]


def test_render_tree_is_lazy(tree):
    it = tree.render_tree()
    assert next(it) == "fruit/"


def test_render_empty():
    assert list(Directory().render_tree()) == []
