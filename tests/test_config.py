"""Tests for RegistrySettings: environment, .env and JSON loading."""

import json
import os
from pathlib import Path

import pytest

from provenance.config import RegistrySettings


class TestFromEnv:
    def test_defaults(self) -> None:
        settings = RegistrySettings.from_env(environ={})
        assert settings.max_products == 10000
        assert settings.registration_fee == 500
        assert settings.producers == ()
        assert settings.data_dir == Path("data")
        assert settings.log_level == "WARNING"

    def test_prefixed_variables(self) -> None:
        settings = RegistrySettings.from_env(environ={
            "PROVENANCE_MAX_PRODUCTS": "25",
            "PROVENANCE_REGISTRATION_FEE": "0",
            "PROVENANCE_PRODUCERS": "ST1PRODUCER, ST4PRODUCER,,",
            "PROVENANCE_DATA_DIR": "/tmp/registry",
            "PROVENANCE_LOG_LEVEL": "info",
            "UNRELATED": "ignored",
        })
        assert settings.max_products == 25
        assert settings.registration_fee == 0
        assert settings.producers == ("ST1PRODUCER", "ST4PRODUCER")
        assert settings.data_dir == Path("/tmp/registry")
        assert settings.log_level == "INFO"

    @pytest.mark.parametrize("raw", ["ten", "-1", "1.5"])
    def test_malformed_integer_rejected(self, raw: str) -> None:
        with pytest.raises(ValueError, match="max_products"):
            RegistrySettings.from_env(environ={"PROVENANCE_MAX_PRODUCTS": raw})

    def test_dotenv_file_loaded(self, tmp_path: Path) -> None:
        os.environ.pop("PROVENANCE_REGISTRATION_FEE", None)
        env_file = tmp_path / ".env"
        env_file.write_text("PROVENANCE_REGISTRATION_FEE=750\n", encoding="utf-8")
        try:
            settings = RegistrySettings.from_env(env_file=env_file)
        finally:
            os.environ.pop("PROVENANCE_REGISTRATION_FEE", None)
        assert settings.registration_fee == 750


class TestFromConfigFile:
    def test_json_file(self, tmp_path: Path) -> None:
        path = tmp_path / "registry.json"
        path.write_text(json.dumps({
            "max_products": 3,
            "producers": ["ST1PRODUCER"],
            "data_dir": str(tmp_path / "data"),
        }), encoding="utf-8")
        settings = RegistrySettings.from_config_file(path)
        assert settings.max_products == 3
        assert settings.registration_fee == 500
        assert settings.producers == ("ST1PRODUCER",)
        assert settings.data_dir == tmp_path / "data"

    def test_non_object_rejected(self, tmp_path: Path) -> None:
        path = tmp_path / "registry.json"
        path.write_text("[1, 2]", encoding="utf-8")
        with pytest.raises(ValueError):
            RegistrySettings.from_config_file(path)
