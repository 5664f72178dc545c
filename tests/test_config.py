from typing import Any

import pytest

from messenger.config import (
    DEFAULT_JWT_ACCESS_SECRET,
    DEFAULT_JWT_REFRESH_SECRET,
    Settings,
)


def prod_settings(**overrides: Any) -> Settings:
    fields = {
        "env": "prod",
        "commit_hash": "abc123",
        "jwt_access_secret": "prod-access-secret-with-enough-bytes",
        "jwt_refresh_secret": "prod-refresh-secret-with-enough-bytes",
    }
    fields.update(overrides)
    return Settings(_env_file=None, **fields)


class TestSettings:
    def test_environment_is_unset_by_default(
        self, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.delenv("ENV", raising=False)

        settings = Settings(_env_file=None)

        assert settings.env is None
        assert settings.is_dev is False
        assert settings.is_prod is False

    def test_environment_from_variable(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("ENV", "dev")

        assert Settings(_env_file=None).is_dev is True

    def test_non_production_allows_placeholders(self) -> None:
        Settings(_env_file=None, env="staging").check_production()

    def test_production_with_real_values_passes(self) -> None:
        prod_settings().check_production()

    def test_production_requires_commit_hash(self) -> None:
        with pytest.raises(ValueError, match="COMMIT_HASH"):
            prod_settings(commit_hash=None).check_production()

    @pytest.mark.parametrize(
        "overrides",
        [
            {"jwt_access_secret": DEFAULT_JWT_ACCESS_SECRET},
            {"jwt_refresh_secret": DEFAULT_JWT_REFRESH_SECRET},
            {"jwt_access_secret": DEFAULT_JWT_REFRESH_SECRET},
        ],
    )
    def test_production_rejects_placeholder_secrets(self, overrides: dict) -> None:
        with pytest.raises(ValueError, match="JWT secrets must be set"):
            prod_settings(**overrides).check_production()

    def test_production_rejects_shared_secret(self) -> None:
        with pytest.raises(ValueError, match="must differ"):
            prod_settings(
                jwt_refresh_secret="prod-access-secret-with-enough-bytes"
            ).check_production()
