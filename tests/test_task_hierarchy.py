"""Tests for building task trees."""

from datetime import date
from types import SimpleNamespace

from app.services.task_hierarchy import build_milestone_trees, build_task_tree, sibling_sort_key


def _task(task_id, title, parent=None, milestone=None, days=None, due=None, sort_order=0):
    return SimpleNamespace(
        id=task_id,
        title=title,
        parent_task_id=parent,
        milestone_id=milestone,
        days_from_anchor=days,
        due_date=due,
        sort_order=sort_order,
    )


def _titles(nodes):
    return [node.task.title for node in nodes]


class TestSiblingOrder:
    """Tests for sibling ordering."""

    def test_offset_then_date_then_undated(self):
        """Offset tasks come first, then dated tasks, then undated ones by title."""
        tasks = [
            _task(1, "Zulu undated"),
            _task(2, "Dated", due=date(2025, 1, 1)),
            _task(3, "Late offset", days=5),
            _task(4, "Alpha undated"),
            _task(5, "Early offset", days=-10),
        ]
        roots = build_task_tree(tasks)
        assert _titles(roots) == ["Early offset", "Late offset", "Dated", "Alpha undated", "Zulu undated"]

    def test_string_offsets_are_numeric(self):
        """Offsets stored as text sort numerically, not lexically."""
        assert sibling_sort_key(_task(1, "a", days="-10")) < sibling_sort_key(_task(2, "b", days="2"))

    def test_date_strings_parsed(self):
        """ISO date strings sort by date."""
        early = _task(1, "b", due="2025-01-02")
        late = _task(2, "a", due="2025-03-01")
        assert sibling_sort_key(early) < sibling_sort_key(late)

    def test_sort_order_breaks_offset_ties(self):
        """Tasks on the same offset keep their stored position."""
        tasks = [_task(1, "B", days=0, sort_order=2), _task(2, "A", days=0, sort_order=1)]
        assert _titles(build_task_tree(tasks)) == ["A", "B"]


class TestBuildTaskTree:
    """Tests for build_task_tree."""

    def test_nests_children_under_parents(self):
        """Children attach to their parent and are sorted within it."""
        tasks = [
            _task(2, "Child late", parent=1, days=3),
            _task(1, "Parent", days=0),
            _task(3, "Child early", parent=1, days=-3),
            _task(4, "Grandchild", parent=3),
        ]
        roots = build_task_tree(tasks)
        assert _titles(roots) == ["Parent"]
        assert _titles(roots[0].children) == ["Child early", "Child late"]
        assert _titles(roots[0].children[0].children) == ["Grandchild"]

    def test_missing_parent_becomes_root(self):
        """A task whose parent is absent is shown at the top level."""
        roots = build_task_tree([_task(1, "Stray", parent=99)])
        assert _titles(roots) == ["Stray"]

    def test_parent_in_other_milestone_ignored(self):
        """Parent links across milestones are not followed."""
        tasks = [_task(1, "Parent", milestone="a"), _task(2, "Child", parent=1, milestone="b")]
        assert sorted(_titles(build_task_tree(tasks))) == ["Child", "Parent"]

    def test_cycle_is_broken(self):
        """Mutual parents do not loop forever and every task is kept."""
        tasks = [_task(1, "A", parent=2), _task(2, "B", parent=1)]
        roots = build_task_tree(tasks)
        seen = []
        stack = list(roots)
        while stack:
            node = stack.pop()
            seen.append(node.task.title)
            stack.extend(node.children)
        assert sorted(seen) == ["A", "B"]

    def test_task_leading_into_cycle_keeps_parent(self):
        """Only a task on the cycle is promoted; a task hanging off it stays nested."""
        tasks = [_task(9, "X", parent=1), _task(1, "A", parent=2), _task(2, "B", parent=1)]
        roots = build_task_tree(tasks)
        assert _titles(roots) == ["A"]
        assert _titles(roots[0].children) == ["B", "X"]

    def test_empty_and_none_input(self):
        """No tasks give an empty tree."""
        assert build_task_tree([]) == []
        assert build_task_tree(None) == []

    def test_malformed_input_yields_empty_tree(self):
        """Input that cannot be iterated is logged, not raised."""
        assert build_task_tree(42) == []


class TestBuildMilestoneTrees:
    """Tests for build_milestone_trees."""

    def test_groups_by_milestone_in_order(self):
        """Milestones keep sort order and loose tasks trail under None."""
        milestones = [
            SimpleNamespace(id="m2", title="Meeting", sort_order=2),
            SimpleNamespace(id="m1", title="Preparation", sort_order=1),
        ]
        tasks = [
            _task(1, "Hold meeting", milestone="m2", days=0),
            _task(2, "Collect statements", milestone="m1", days=-14),
            _task(3, "Loose"),
        ]
        groups = build_milestone_trees(milestones, tasks)
        assert [(m.title if m else None) for m, _ in groups] == ["Preparation", "Meeting", None]
        assert [_titles(nodes) for _, nodes in groups] == [["Collect statements"], ["Hold meeting"], ["Loose"]]

    def test_empty_milestone_kept(self):
        """A milestone without tasks still appears with an empty tree."""
        groups = build_milestone_trees([SimpleNamespace(id="m1", title="Empty", sort_order=0)], [])
        assert len(groups) == 1
        assert groups[0][1] == []
