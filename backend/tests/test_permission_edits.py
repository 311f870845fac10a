import copy
import pytest
from app.services.errors import InvalidOperation, UnknownAction, UnknownSection, UnknownSubmodule
from app.services.permission_edits import apply_toggle, toggle_action, toggle_all, toggle_section, toggle_submodule
from app.services.permissions import (
    all_actions_selected,
    all_modules_selected,
    all_submodules_selected,
    default_permissions,
    has_permission,
    Subject,
    some_actions_selected,
    some_submodules_selected,
)
from app.services.registry import DEFAULT_REGISTRY


def test_toggle_action_backfills_registered_actions():
    store = toggle_action({}, 'stock-alerts', 'view')
    assert store == {'stock-alerts': {'view': True, 'add-stock': False, 'create-po': False}}


def test_toggle_action_twice_restores_normalized_store():
    start = default_permissions()
    once = toggle_action(start, 'view-materials', 'edit')
    assert once['view-materials']['edit'] is True
    assert toggle_action(once, 'view-materials', 'edit') == start


def test_toggles_never_mutate_input():
    start = {'view-materials': {'view': True}}
    snapshot = copy.deepcopy(start)
    toggle_action(start, 'view-materials', 'edit')
    toggle_submodule(start, 'view-materials')
    toggle_section(start, 'packing')
    toggle_all(start)
    assert start == snapshot


def test_untouched_entries_are_shared_with_previous_store():
    start = {'view-materials': {'view': True}, 'jobber-unit': {'edit': True}}
    new = toggle_action(start, 'view-materials', 'edit')
    assert new is not start
    assert new['jobber-unit'] is start['jobber-unit']
    assert new['view-materials'] is not start['view-materials']


def test_toggle_action_unknown_submodule_raises():
    with pytest.raises(UnknownSubmodule):
        toggle_action({}, 'no-such-module', 'view')


def test_toggle_action_unregistered_action_raises():
    store = {'view-materials': {'view': True}}
    with pytest.raises(UnknownAction) as exc:
        toggle_action(store, 'view-materials', 'launch-missiles')
    assert exc.value.action == 'launch-missiles'
    with pytest.raises(UnknownAction):
        toggle_action(store, 'view-materials', 5)
    with pytest.raises(UnknownAction):
        toggle_submodule(store, 'view-materials', actions=['view', 'approve'])
    assert store == {'view-materials': {'view': True}}


def test_partial_submodule_selects_all():
    store = {'view-materials': {'view': True, 'edit': False}}
    new = toggle_submodule(store, 'view-materials')
    assert new['view-materials'] == {a: True for a in DEFAULT_REGISTRY.actions_of('view-materials')}
    assert all_actions_selected(new, 'view-materials')


def test_full_submodule_clears():
    store = toggle_submodule({}, 'product-dc')
    assert all_actions_selected(store, 'product-dc')
    cleared = toggle_submodule(store, 'product-dc')
    assert cleared['product-dc'] == {'new-invoice': False, 'view-invoice': False}
    assert not some_actions_selected(cleared, 'product-dc')


def test_toggle_submodule_with_explicit_action_subset():
    store = toggle_submodule({}, 'view-materials', actions=['view', 'view-report'])
    assert store['view-materials'] == {'view': True, 'view-report': True}
    assert not all_actions_selected(store, 'view-materials')
    assert all_actions_selected(store, 'view-materials', actions=['view', 'view-report'])


def test_section_tie_break_grants_everything_then_clears():
    store = {'view-materials': {a: True for a in DEFAULT_REGISTRY.actions_of('view-materials')}}
    assert some_submodules_selected(store, 'packing')
    assert not all_submodules_selected(store, 'packing')
    granted = toggle_section(store, 'packing')
    for sub_id, sub in DEFAULT_REGISTRY.submodules_of('packing').items():
        assert all(granted[sub_id][a] is True for a in sub.actions)
    assert all_submodules_selected(granted, 'packing')
    cleared = toggle_section(granted, 'packing')
    assert not some_submodules_selected(cleared, 'packing')
    # other sections untouched
    assert 'jobber-unit' not in cleared


def test_toggle_section_unknown_raises():
    with pytest.raises(UnknownSection):
        toggle_section({}, 'finance')


def test_toggle_all_round_trip():
    everything = toggle_all({})
    assert all_modules_selected(everything)
    admin_like = Subject(role='Manager', permissions=everything, module_access=[])
    for sub in DEFAULT_REGISTRY.iter_submodules():
        for action in sub.actions:
            assert has_permission(admin_like, sub.id, action)
    nothing = toggle_all(everything)
    assert nothing == default_permissions()


def test_toggle_all_keeps_unregistered_keys():
    store = {'retired-module': {'view': True}}
    assert toggle_all(store)['retired-module'] == {'view': True}


def test_apply_toggle_dispatch():
    assert apply_toggle({}, 'action', submodule='jobber-unit', action='edit')['jobber-unit']['edit'] is True
    assert all_actions_selected(apply_toggle({}, 'submodule', submodule='jobber-unit'), 'jobber-unit')
    assert all_submodules_selected(apply_toggle({}, 'section', section='product'), 'product')
    assert all_modules_selected(apply_toggle({}, 'all'))


@pytest.mark.parametrize('scope,kwargs', [
    ('action', {'submodule': 'jobber-unit'}),
    ('submodule', {}),
    ('section', {}),
    ('everything', {}),
])
def test_apply_toggle_rejects_bad_arguments(scope, kwargs):
    with pytest.raises(InvalidOperation):
        apply_toggle({}, scope, **kwargs)
