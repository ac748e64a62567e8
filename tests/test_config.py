import json

from rental_engine import paths
from rental_engine.config import (
    DEFAULT_TAX_RATE,
    EngineSettings,
    PartialMinimumBasis,
    PaymentPolicy,
    load_engine_settings,
    save_engine_settings,
    settings_from_dict,
)


def test_missing_file_gives_defaults(tmp_path):
    settings = load_engine_settings(tmp_path / "config.json")
    assert settings == EngineSettings()
    assert settings.tax_rate == DEFAULT_TAX_RATE


def test_round_trip_keeps_other_sections(tmp_path):
    config_path = tmp_path / "nested" / "config.json"
    config_path.parent.mkdir()
    config_path.write_text(json.dumps({"ui": {"theme": "dark"}}), encoding="utf-8")
    settings = EngineSettings(
        tax_rate=0.05,
        late_fee_per_day=250.0,
        payment_policy=PaymentPolicy(
            max_partial_payments=3, partial_minimum_basis=PartialMinimumBasis.TOTAL
        ),
    )

    save_engine_settings(config_path, settings)

    assert load_engine_settings(config_path) == settings
    stored = json.loads(config_path.read_text(encoding="utf-8"))
    assert stored["ui"] == {"theme": "dark"}
    assert stored["engine"]["payment_policy"]["partial_minimum_basis"] == "total"


def test_malformed_values_fall_back():
    settings = settings_from_dict(
        {
            "tax_rate": "lots",
            "currency": None,
            "payment_policy": {"partial_minimum_basis": "sometimes"},
        }
    )
    assert settings.tax_rate == DEFAULT_TAX_RATE
    assert settings.currency == "INR"
    assert settings.payment_policy.partial_minimum_basis is PartialMinimumBasis.OUTSTANDING


def test_app_home_override(tmp_path, monkeypatch):
    monkeypatch.setenv("RENTAL_ENGINE_HOME", str(tmp_path / "home"))
    assert paths.get_db_path() == tmp_path / "home" / "rental_engine.db"
    assert paths.get_logs_dir().is_dir()
