import pytest

from backend.core import config


def test_runtime_config_accepts_development_defaults(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(config, 'APP_ENV', 'development')
    monkeypatch.setattr(config, 'JWT_SECRET_KEY', 'change-me')

    config.validate_runtime_config()


def test_runtime_config_requires_secret_in_production(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(config, 'APP_ENV', 'production')
    monkeypatch.setattr(config, 'JWT_SECRET_KEY', 'change-me')

    with pytest.raises(RuntimeError, match='JWT_SECRET_KEY'):
        config.validate_runtime_config()


def test_runtime_config_requires_positive_instance_cap(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(config, 'APP_ENV', 'development')
    monkeypatch.setattr(config, 'MAX_RECURRING_INSTANCES', 0)

    with pytest.raises(RuntimeError, match='MAX_RECURRING_INSTANCES'):
        config.validate_runtime_config()


@pytest.mark.parametrize(
    ('raw', 'expected'),
    [(None, ['http://localhost:3000']), ('', ['http://localhost:3000']), ('https://a.test, https://b.test', ['https://a.test', 'https://b.test'])],
)
def test_list_settings_split_on_commas(raw, expected) -> None:
    assert config._get_list(raw, ['http://localhost:3000']) == expected


@pytest.mark.parametrize(('raw', 'expected'), [(None, True), ('false', False), ('YES', True), ('0', False)])
def test_bool_settings(raw, expected) -> None:
    assert config._get_bool(raw, default=True) is expected
