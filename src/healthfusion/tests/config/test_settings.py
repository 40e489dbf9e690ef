import pytest

from healthfusion.config import settings as settings_module
from healthfusion.config.settings import (
    ConfidenceSettings,
    FusionSettings,
    LoggingSettings,
    NormalizationSettings,
    OutputSettings,
    ProcessingSettings,
    Settings,
    get_settings,
    set_settings,
)
from healthfusion.domain.exceptions import ConfigurationError


@pytest.fixture
def valid(tmp_path) -> Settings:
    return Settings(input_directory=tmp_path)


def test_defaults_validate(valid):
    valid.validate()


def test_inputs_required():
    with pytest.raises(ConfigurationError) as exc:
        Settings().validate()
    assert exc.value.config_field == "input_sources"
    assert exc.value.suggestions


def test_files_and_directory_are_exclusive(tmp_path):
    s = Settings(input_files=[tmp_path / "a.json"], input_directory=tmp_path)
    with pytest.raises(ConfigurationError, match="both"):
        s.validate()


def test_missing_directory(tmp_path):
    with pytest.raises(ConfigurationError, match="does not exist"):
        Settings(input_directory=tmp_path / "nope").validate()


@pytest.mark.parametrize("section, field", [
    (NormalizationSettings(vram_slack=1.5), "normalization.vram_slack"),
    (ConfidenceSettings(expected_sections=0), "confidence.expected_sections"),
    (ConfidenceSettings(coverage_threshold=-0.1), "confidence.coverage_threshold"),
    (FusionSettings(high_weights=(0.7, 0.4)), "fusion.high_weights"),
    (FusionSettings(medium_confidence=90, high_confidence=80), "fusion.high_confidence"),
    (FusionSettings(failed_collection_cap=120), "fusion.failed_collection_cap"),
    (ProcessingSettings(extensions=()), "processing.extensions"),
    (OutputSettings(indent=-1), "output.indent"),
])
def test_section_validation(section, field):
    with pytest.raises(ConfigurationError) as exc:
        section.validate()
    assert exc.value.config_field == field
    assert f"[{field}]" in str(exc.value)


def test_output_parent_must_exist(tmp_path):
    with pytest.raises(ConfigurationError, match="Output directory"):
        OutputSettings(output_path=tmp_path / "missing" / "out.json").validate()


def test_log_dir_must_be_directory(tmp_path):
    f = tmp_path / "file.log"
    f.write_text("x")
    with pytest.raises(ConfigurationError):
        LoggingSettings(log_dir=f).validate()


def test_to_dict(valid):
    d = valid.to_dict()
    assert d["fusion"]["weights"]["high"] == [0.6, 0.4]
    assert d["normalization"]["vram_slack"] == 0.10
    assert d["runtime"]["input_directory"] == str(valid.input_directory)


def test_global_settings(valid, monkeypatch):
    monkeypatch.setattr(settings_module, "_settings", None)
    with pytest.raises(ConfigurationError, match="not initialized"):
        get_settings()
    set_settings(valid)
    assert get_settings() is valid
