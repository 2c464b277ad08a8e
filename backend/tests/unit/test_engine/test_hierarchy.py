"""Hierarchy resolver tests"""
import pytest

from stepgate.domain.errors import MaxDepthExceededError, ParentNotFoundError
from stepgate.domain.models import WorkflowStep
from stepgate.engine.hierarchy import HierarchyResolver, order_steps, step_depth

from tests.fakes import make_step


@pytest.fixture
def resolver() -> HierarchyResolver:
    return HierarchyResolver()


@pytest.fixture
def tree():
    """1, 1.1, 1.2, 1.2.1, 2"""
    return [
        make_step("S1", 1),
        make_step("S1.1", 1, 1, parent_step_id="S1"),
        make_step("S1.2", 1, 2, parent_step_id="S1"),
        make_step("S1.2.1", 1, 2, 1, parent_step_id="S1.2"),
        make_step("S2", 2),
    ]


class TestAssignCoordinates:

    def test_first_root_gets_level_one(self, resolver):
        coords = resolver.assign_coordinates([])
        assert coords.as_tuple() == (1, 0, 0)

    def test_root_follows_highest_level_1(self, resolver, tree):
        assert resolver.assign_coordinates(tree).as_tuple() == (3, 0, 0)

    def test_child_of_root(self, resolver, tree):
        assert resolver.assign_coordinates(tree, "S1").as_tuple() == (1, 3, 0)

    def test_first_child_of_root(self, resolver, tree):
        assert resolver.assign_coordinates(tree, "S2").as_tuple() == (2, 1, 0)

    def test_child_of_depth_two(self, resolver, tree):
        assert resolver.assign_coordinates(tree, "S1.2").as_tuple() == (1, 2, 2)
        assert resolver.assign_coordinates(tree, "S1.1").as_tuple() == (1, 1, 1)

    def test_depth_three_parent_rejected(self, resolver, tree):
        with pytest.raises(MaxDepthExceededError) as exc:
            resolver.assign_coordinates(tree, "S1.2.1")
        assert "1.2.1" in exc.value.message

    def test_unknown_parent(self, resolver, tree):
        with pytest.raises(ParentNotFoundError) as exc:
            resolver.assign_coordinates(tree, "missing")
        assert exc.value.message == "Parent step not found"

    def test_gaps_are_not_filled(self, resolver):
        steps = [make_step("A", 1), make_step("C", 3)]
        assert resolver.assign_coordinates(steps).as_tuple() == (4, 0, 0)


class TestBulkCoordinates:

    def test_offsets_follow_input_order(self, resolver, tree):
        coords = resolver.assign_bulk_coordinates(tree, 3, "S1")
        assert [c.as_tuple() for c in coords] == [(1, 3, 0), (1, 4, 0), (1, 5, 0)]

    def test_roots(self, resolver, tree):
        coords = resolver.assign_bulk_coordinates(tree, 2)
        assert [c.step_number for c in coords] == ["3.0.0", "4.0.0"]

    def test_parent_checked_once(self, resolver, tree):
        with pytest.raises(MaxDepthExceededError):
            resolver.ensure_can_have_children(tree, "S1.2.1")
        assert resolver.ensure_can_have_children(tree, "S1.2").step_id == "S1.2"


def test_coordinates_never_collide(resolver):
    """Grow a ticket under varying parents and check uniqueness"""
    steps = []
    parents = [None, None, 0, 0, 1, 2, 2, None, 3, 5, 5, 0, 7, 12]
    for i, parent_index in enumerate(parents):
        parent = None
        if parent_index is not None and parent_index < len(steps) and steps[parent_index].depth < 3:
            parent = steps[parent_index]
        coords = resolver.assign_coordinates(steps, parent.step_id if parent else None)
        steps.append(WorkflowStep(
            step_id=f"S{i}",
            ticket_id="TKT-1",
            title=f"Step {i}",
            level_1=coords.level_1,
            level_2=coords.level_2,
            level_3=coords.level_3,
            parent_step_id=parent.step_id if parent else None
        ))

    numbers = [s.step_number for s in steps]
    assert len(numbers) == len(set(numbers))
    assert all(1 <= step_depth(s) <= 3 for s in steps)


def test_level_3_without_level_2_is_invalid():
    with pytest.raises(ValueError):
        make_step("bad", 1, 0, 2)


class TestTreeHelpers:

    def test_order_steps(self, tree):
        shuffled = [tree[4], tree[3], tree[0], tree[2], tree[1]]
        assert [s.step_number for s in order_steps(shuffled)] == [
            "1.0.0", "1.1.0", "1.2.0", "1.2.1", "2.0.0"
        ]

    def test_children(self, resolver, tree):
        assert [s.step_id for s in resolver.get_children(tree, "S1")] == ["S1.1", "S1.2"]

    def test_ancestors(self, resolver, tree):
        assert resolver.get_ancestor_ids(tree, tree[3]) == ["S1.2", "S1"]
        assert resolver.get_ancestor_ids(tree, tree[0]) == []

    def test_is_descendant_of(self, resolver, tree):
        assert resolver.is_descendant_of(tree[3], tree[0], tree)
        assert not resolver.is_descendant_of(tree[0], tree[3], tree)
