# Copyright 2025 Softwell S.r.l. - Genropy Team
# SPDX-License-Identifier: Apache-2.0

"""Tests for Leaf, Branch, ArityRegistry, Draft and Subscription."""

import pytest

from genro_deepmap import (
    ArityMismatchError,
    ArityRegistry,
    Branch,
    Draft,
    Leaf,
    StructureViolationError,
    Subscription,
    produce,
)


def _sample_root():
    """Build a root with two groups, in place."""
    root = Branch()
    draft = Draft(root)
    draft.write('users', ('alice', 'profile'), 1)
    draft.write('users', ('bob', 'profile'), 2)
    draft.write('posts', (7,), 'hello')
    return root


class TestNodes:
    """Tests for Leaf and Branch."""

    def test_leaf_holding_dict_is_still_a_leaf(self):
        """Test a dict value does not make a leaf look like a branch."""
        leaf = Leaf({'a': 1})
        assert leaf.is_leaf is True
        assert leaf.is_branch is False
        assert leaf.kind == 'leaf'
        assert leaf.value == {'a': 1}

    def test_branch_basics(self):
        """Test Branch container protocol."""
        branch = Branch()
        assert branch.is_branch is True
        assert branch.kind == 'branch'
        assert len(branch) == 0
        branch.children['x'] = Leaf(1)
        branch.children['y'] = Leaf(2)
        assert len(branch) == 2
        assert 'x' in branch
        assert list(branch) == ['x', 'y']
        assert branch.get('x').value == 1
        assert branch.get('missing') is None

    def test_copy_shares_children(self):
        """Test copy is shallow."""
        child = Branch({'k': Leaf(1)})
        branch = Branch({'c': child})
        clone = branch.copy()
        assert clone is not branch
        assert clone.children is not branch.children
        assert clone.children['c'] is child

    def test_as_dict(self):
        """Test recursive conversion to plain dict."""
        root = _sample_root()
        assert root.as_dict() == {
            'users': {'alice': {'profile': 1}, 'bob': {'profile': 2}},
            'posts': {7: 'hello'},
        }

    def test_repr(self):
        """Test string representations."""
        assert repr(Leaf('v')) == "Leaf('v')"
        assert 'users' in repr(_sample_root())


class TestArityRegistry:
    """Tests for ArityRegistry."""

    def test_first_check_records_length(self):
        """Test the first key path fixes the arity."""
        registry = ArityRegistry()
        assert registry.get('users') is None
        registry.check('users', ('alice', 'profile'))
        assert registry.get('users') == 2
        assert 'users' in registry
        assert len(registry) == 1

    def test_same_length_accepted(self):
        """Test later checks with the same length pass."""
        registry = ArityRegistry()
        registry.check('users', ('alice', 'profile'))
        registry.check('users', ('bob', 'settings'))
        assert registry.get('users') == 2

    def test_zero_arity_is_recorded(self):
        """Test an empty key path fixes arity 0."""
        registry = ArityRegistry()
        registry.check('config', ())
        assert registry.get('config') == 0
        with pytest.raises(ArityMismatchError):
            registry.check('config', ('x',))

    def test_mismatch_raises(self):
        """Test a different length raises with details."""
        registry = ArityRegistry()
        registry.check('users', ('alice', 'profile'))
        with pytest.raises(ArityMismatchError, match="expected 2, got 1") as exc_info:
            registry.check('users', ('alice',))
        assert exc_info.value.group == 'users'
        assert exc_info.value.expected == 2
        assert exc_info.value.actual == 1

    def test_groups_are_independent(self):
        """Test each group has its own arity."""
        registry = ArityRegistry()
        registry.check('a', (1,))
        registry.check('b', (1, 2, 3))
        assert registry.get('a') == 1
        assert registry.get('b') == 3


class TestDraftInPlace:
    """Tests for Draft without copy on write."""

    def test_write_and_read(self):
        """Test a written value can be read back."""
        root = Branch()
        draft = Draft(root)
        draft.write('users', ('alice', 'profile'), {'name': 'Alice'})
        assert draft.read('users', ('alice', 'profile')) == {'name': 'Alice'}
        assert draft.result is root

    def test_read_missing_returns_default(self):
        """Test missing hops return the default."""
        draft = Draft(_sample_root())
        assert draft.read('users', ('carol', 'profile')) is None
        assert draft.read('users', ('alice', 'settings'), 'none') == 'none'
        assert draft.read('nogroup', ('a',), 'none') == 'none'

    def test_read_through_leaf_returns_default(self):
        """Test reading past a leaf is absence, not an error."""
        draft = Draft(_sample_root())
        assert draft.read('posts', (7, 'extra'), 'none') == 'none'

    def test_read_branch_returns_default(self):
        """Test a short path that stops on a branch is absent."""
        draft = Draft(_sample_root())
        assert draft.read('users', ('alice',), 'none') == 'none'

    def test_overwrite(self):
        """Test writing again replaces the leaf."""
        draft = Draft(_sample_root())
        draft.write('users', ('alice', 'profile'), 10)
        assert draft.read('users', ('alice', 'profile')) == 10

    def test_empty_keys_makes_group_a_leaf(self):
        """Test the group entry itself holds the value."""
        root = Branch()
        draft = Draft(root)
        draft.write('config', (), 5)
        assert root.children['config'].is_leaf
        assert draft.read('config', ()) == 5

    def test_remove_prunes_empty_branches(self):
        """Test emptied branches are removed up to the group."""
        root = _sample_root()
        draft = Draft(root)
        assert draft.remove('users', ('alice', 'profile')) is True
        assert 'alice' not in root.children['users']
        assert draft.remove('users', ('bob', 'profile')) is True
        assert 'users' not in root
        assert root.as_dict() == {'posts': {7: 'hello'}}

    def test_remove_keeps_non_empty_branches(self):
        """Test pruning stops at the first branch still holding values."""
        root = Branch()
        draft = Draft(root)
        draft.write('users', ('alice', 'profile'), 1)
        draft.write('users', ('alice', 'settings'), 2)
        draft.remove('users', ('alice', 'profile'))
        assert root.as_dict() == {'users': {'alice': {'settings': 2}}}

    def test_remove_missing_is_noop(self):
        """Test removing an absent path returns False."""
        root = _sample_root()
        draft = Draft(root)
        assert draft.remove('users', ('carol', 'profile')) is False
        assert draft.remove('posts', (7, 'extra')) is False
        assert draft.remove('nogroup', ()) is False
        assert len(root.children['users']) == 2

    def test_remove_zero_arity_group(self):
        """Test removing the leaf of an arity 0 group removes the group."""
        root = Branch()
        draft = Draft(root)
        draft.write('config', (), 5)
        assert draft.remove('config', ()) is True
        assert 'config' not in root

    def test_write_through_leaf_raises(self):
        """Test indexing through a leaf is a structure violation."""
        draft = Draft(_sample_root())
        with pytest.raises(StructureViolationError, match="found a leaf"):
            draft.write('posts', (7, 'extra'), 1)

    def test_write_over_branch_raises(self):
        """Test a leaf never replaces a branch."""
        draft = Draft(_sample_root())
        with pytest.raises(StructureViolationError, match="found a branch"):
            draft.write('users', ('alice',), 1)
        with pytest.raises(StructureViolationError):
            draft.write('users', (), 1)


class TestDraftCopyOnWrite:
    """Tests for Draft with copy on write."""

    def test_base_is_untouched(self):
        """Test a copy-on-write transaction never modifies its base."""
        base = _sample_root()
        before = base.as_dict()
        new = produce(
            base,
            lambda d: d.write('users', ('alice', 'profile'), 10),
            copy_on_write=True,
        )
        assert new is not base
        assert base.as_dict() == before
        assert Draft(new).read('users', ('alice', 'profile')) == 10

    def test_untouched_branches_are_shared(self):
        """Test only the path to the changed leaf is copied."""
        base = _sample_root()
        new = produce(
            base,
            lambda d: d.write('users', ('alice', 'profile'), 10),
            copy_on_write=True,
        )
        assert new.children['posts'] is base.children['posts']
        assert new.children['users'] is not base.children['users']
        assert new.children['users'].children['alice'] is not base.children['users'].children['alice']
        assert new.children['users'].children['bob'] is base.children['users'].children['bob']

    def test_branch_copied_once_per_transaction(self):
        """Test several writes under one branch share the same copy."""
        base = _sample_root()
        seen = []

        def recipe(draft):
            draft.write('users', ('alice', 'profile'), 10)
            seen.append(draft.result.children['users'])
            draft.write('users', ('bob', 'profile'), 20)
            seen.append(draft.result.children['users'])

        new = produce(base, recipe, copy_on_write=True)
        assert seen[0] is seen[1] is new.children['users']
        assert new.as_dict()['users'] == {
            'alice': {'profile': 10},
            'bob': {'profile': 20},
        }
        assert base.as_dict()['users'] == {
            'alice': {'profile': 1},
            'bob': {'profile': 2},
        }

    def test_remove_with_pruning_keeps_base(self):
        """Test pruning happens on copies only."""
        base = _sample_root()
        new = produce(
            base,
            lambda d: d.remove('posts', (7,)),
            copy_on_write=True,
        )
        assert 'posts' not in new
        assert 'posts' in base
        assert new.children['users'] is base.children['users']

    def test_noop_returns_base(self):
        """Test a transaction that changes nothing returns its base."""
        base = _sample_root()
        new = produce(
            base,
            lambda d: d.remove('users', ('carol', 'profile')),
            copy_on_write=True,
        )
        assert new is base

    def test_new_group_shares_other_groups(self):
        """Test adding a group copies only the root."""
        base = _sample_root()
        new = produce(base, lambda d: d.write('tags', ('x',), 1), copy_on_write=True)
        assert new.children['users'] is base.children['users']
        assert new.children['posts'] is base.children['posts']
        assert 'tags' not in base

    def test_in_place_returns_base(self):
        """Test the in-place mode modifies and returns its base."""
        base = _sample_root()
        new = produce(base, lambda d: d.write('users', ('alice', 'profile'), 10))
        assert new is base
        assert Draft(base).read('users', ('alice', 'profile')) == 10

    def test_both_modes_read_the_same(self):
        """Test the two modes give the same logical result."""
        def recipe(draft):
            draft.write('users', ('carol', 'profile'), 3)
            draft.remove('users', ('alice', 'profile'))
            draft.write('posts', (8,), 'bye')

        in_place = produce(_sample_root(), recipe)
        copied = produce(_sample_root(), recipe, copy_on_write=True)
        assert in_place.as_dict() == copied.as_dict()


class TestSubscription:
    """Tests for Subscription."""

    def test_emit_in_registration_order(self):
        """Test subscribers are called in order they subscribed."""
        sub = Subscription()
        calls = []
        sub.subscribe(lambda: calls.append('a'))
        sub.subscribe(lambda: calls.append('b'))
        sub.subscribe(lambda: calls.append('c'))
        sub.emit()
        assert calls == ['a', 'b', 'c']
        assert len(sub) == 3

    def test_unsubscribe_handle(self):
        """Test the returned handle removes the subscriber."""
        sub = Subscription()
        calls = []
        unsubscribe = sub.subscribe(lambda: calls.append('a'))
        unsubscribe()
        unsubscribe()
        sub.emit()
        assert calls == []
        assert len(sub) == 0

    def test_unsubscribe_by_id(self):
        """Test removing a subscriber by its id."""
        sub = Subscription()
        sub.subscribe(lambda: None, subscriber_id='watcher')
        assert 'watcher' in sub
        assert sub.unsubscribe('watcher') is True
        assert sub.unsubscribe('watcher') is False

    def test_same_id_replaces_in_place(self):
        """Test re-subscribing an id keeps its position."""
        sub = Subscription()
        calls = []
        old_handle = sub.subscribe(lambda: calls.append('old'), subscriber_id='x')
        sub.subscribe(lambda: calls.append('y'), subscriber_id='y')
        sub.subscribe(lambda: calls.append('new'), subscriber_id='x')
        old_handle()
        sub.emit()
        assert calls == ['new', 'y']

    def test_generated_id_skips_taken_ids(self):
        """Test an anonymous subscriber never replaces a named one."""
        sub = Subscription()
        calls = []
        named_handle = sub.subscribe(lambda: calls.append('named'), subscriber_id='sub_0')
        sub.subscribe(lambda: calls.append('anon'))
        sub.emit()
        assert calls == ['named', 'anon']
        assert len(sub) == 2
        named_handle()
        sub.emit()
        assert calls == ['named', 'anon', 'anon']

    def test_registry_fixed_during_emit(self):
        """Test changes made while emitting apply to the next emission."""
        sub = Subscription()
        calls = []
        handles = {}

        def first():
            calls.append('first')
            handles['second']()

        sub.subscribe(first)
        handles['second'] = sub.subscribe(lambda: calls.append('second'))
        sub.emit()
        assert calls == ['first', 'second']
        sub.emit()
        assert calls == ['first', 'second', 'first']

    def test_errors_propagate(self):
        """Test a failing subscriber stops the emission and propagates."""
        sub = Subscription()
        calls = []

        def broken():
            raise ValueError("boom")

        sub.subscribe(broken)
        sub.subscribe(lambda: calls.append('after'))
        with pytest.raises(ValueError, match="boom"):
            sub.emit()
        assert calls == []
        assert sub.emitting is False

    def test_emitting_flag(self):
        """Test emitting is True only inside an emission."""
        sub = Subscription()
        states = []
        sub.subscribe(lambda: states.append(sub.emitting))
        assert sub.emitting is False
        sub.emit()
        assert states == [True]
        assert sub.emitting is False
