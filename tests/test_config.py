import pytest

from netatmo_orchestration.historical.config import CREDENTIAL_ENV_VARS, get_credentials
from netatmo_orchestration.historical.errors import ValidationError
from netatmo_orchestration.historical.models import Credentials


def test_get_credentials_from_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    for key, env_var in CREDENTIAL_ENV_VARS.items():
        monkeypatch.setenv(env_var, f"{key}-value")

    assert get_credentials() == Credentials(
        client_id="client_id-value",
        client_secret="client_secret-value",
        username="username-value",
        password="password-value",
    )


def test_get_credentials_names_missing_variables(monkeypatch: pytest.MonkeyPatch) -> None:
    for env_var in CREDENTIAL_ENV_VARS.values():
        monkeypatch.setenv(env_var, "x")
    monkeypatch.delenv("NETATMO_PASSWORD")

    with pytest.raises(ValidationError) as excinfo:
        get_credentials()

    assert "NETATMO_PASSWORD" in str(excinfo.value)
