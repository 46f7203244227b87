import pytest

import wfclient
from wfclient._cogs.structs.validation import FIELD_ROOT


def test_field_error_rendering():
    assert str(wfclient.FieldError('spec.name', 'required', 'is required')) == 'spec.name: is required'
    assert str(wfclient.FieldError(FIELD_ROOT, 'invalidValue', 'is broken')) == 'is broken'


@pytest.mark.parametrize('code, is_warning', [
    ('deprecated', True),
    ('shouldExist', True),
    ('fieldWarning', True),
    ('required', False),
    ('mustExist', False),
])
def test_field_error_warnings(code, is_warning):
    assert wfclient.FieldError('f', code, 'm').is_warning is is_warning


def test_validation_error_parsing_and_rendering():
    error = wfclient.ValidationError.from_raw({
        'message': 'invalid',
        'fieldErrors': [
            {'field': 'spec.name', 'errCode': 'required', 'message': 'is required'},
            {'field': '(root)', 'errCode': 'invalidValue', 'message': 'is wrong'},
        ],
    })
    assert error.code == 400
    assert error.has_errors
    assert str(error) == "invalid:\n * spec.name: is required\n * is wrong\n"


def test_validation_error_without_field_errors_renders_empty():
    error = wfclient.ValidationError.from_raw({'message': 'invalid'})
    assert not error.has_errors
    assert str(error) == ''


def test_validation_error_from_non_mapping():
    with pytest.raises(ValueError):
        wfclient.ValidationError.from_raw(['x'])


@pytest.mark.parametrize('field_errors', [['oops'], [None], 5, 'spec.name', {'field': 'spec.name'}])
def test_validation_error_with_malformed_field_errors(field_errors):
    with pytest.raises(ValueError):
        wfclient.ValidationError.from_raw({'message': 'x', 'fieldErrors': field_errors})


def test_validation_error_inspection():
    error = wfclient.ValidationError('invalid')
    error.add_field_error('spec.a', 'required', 'is required')
    error.add_field_error('spec.a', 'required', 'is required')  # deduplicated
    error.add_field_error('spec.b', 'deprecated', 'is deprecated')
    assert len(error.field_errors) == 2
    assert [fe.field for fe in error.get_warnings()] == ['spec.b']
    assert [fe.field for fe in error.get_non_warnings()] == ['spec.a']
    assert error.has_error_containing('deprecated')
    assert not error.has_error_containing('absent')
    assert error.has_field_error(wfclient.FieldError('spec.a', 'required', 'is required'))
    assert error.get_field_errors('spec.b') == [wfclient.FieldError('spec.b', 'deprecated', 'is deprecated')]
    assert error.to_raw()['fieldErrors'][0] == {'field': 'spec.a', 'errCode': 'required', 'message': 'is required'}


@pytest.mark.parametrize('ref, expected', [
    (wfclient.DependentReference('Cluster', 'c1'), 'Cluster/c1'),
    (wfclient.DependentReference('Cluster', 'c1', workspace='ws'), 'Cluster/ws/c1'),
    (wfclient.DependentReference('Plan', 'p1', version='v2'), 'Plan/p1@v2'),
])
def test_dependent_reference_rendering(ref, expected):
    assert str(ref) == expected


def test_dependent_reference_parsing():
    assert wfclient.DependentReference.from_string('Cluster/c1') == wfclient.DependentReference('Cluster', 'c1')
    assert wfclient.DependentReference.from_string('Cluster/ws/c1') == \
        wfclient.DependentReference('Cluster', 'c1', workspace='ws')
    with pytest.raises(ValueError, match=r"incorrect dependent reference format"):
        wfclient.DependentReference.from_string('Cluster')
    with pytest.raises(ValueError, match=r"incorrect dependent reference format"):
        wfclient.DependentReference.from_string('a/b/c/d')


def test_dependency_violation_with_user_dependents():
    error = wfclient.DependencyViolationError.from_raw({
        'message': 'cannot delete:',
        'dependents': [
            {'kind': 'AppEnv', 'name': 'e1', 'workspace': 'ws'},
            {'kind': 'Cluster', 'name': 'sys', 'system': True},
        ],
    })
    assert str(error) == "cannot delete:\n * AppEnv/ws/e1\n"


def test_dependency_violation_with_default_message():
    error = wfclient.DependencyViolationError(dependents=[wfclient.DependentReference('AppEnv', 'e1')])
    assert str(error) == "the following objects need to be deleted first:\n * AppEnv/e1\n"


def test_dependency_violation_with_system_dependents_only():
    error = wfclient.DependencyViolationError('x', [wfclient.DependentReference('Cluster', 'c', system=True)])
    assert str(error) == "waiting for the following objects to be deleted by Wayfinder:\n * Cluster/c\n"


@pytest.mark.parametrize('dependents', [['Cluster/c1'], [42], 'Cluster/c1', {'kind': 'Cluster'}])
def test_dependency_violation_with_malformed_dependents(dependents):
    with pytest.raises(ValueError):
        wfclient.DependencyViolationError.from_raw({'message': 'x', 'dependents': dependents})


@pytest.mark.parametrize('raw, expected', [
    ({'warningType': 'Dependency', 'kind': 'Plan', 'name': 'p1'},
     "Dependency Plan p1 does not exist"),
    ({'warningType': 'Dependency', 'kind': 'Plan', 'name': 'p1', 'version': 'v2', 'workspace': 'ws'},
     "Dependency Plan ws p1 (version v2) does not exist"),
    ({'warningType': 'FieldDeprecated', 'kind': 'AppEnv', 'name': 'spec.x', 'apiVersion': 'app/v1'},
     "Field spec.x on app/v1/AppEnv is deprecated and will be removed in a later version"),
    ({'warningType': 'General', 'name': 'n', 'message': 'm'},
     "* n: m"),
    ({'warningType': 'Unknown', 'name': 'n', 'kind': 'k'},
     ""),
    ({'warningType': 'General'},
     ""),
])
def test_warning_display_messages(raw, expected):
    warning = wfclient.APIWarning.from_raw(raw)
    assert warning.get_display_message() == expected


def test_warning_rendering():
    warning = wfclient.APIWarning(warning_type='General', message='m')
    assert warning.to_raw() == {'warningType': 'General', 'message': 'm'}
    assert warning.should_handle
