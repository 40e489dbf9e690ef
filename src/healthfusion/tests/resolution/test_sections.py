import pytest

from healthfusion.resolution import (
    SectionLookup,
    iter_statuses,
    resolve_section,
    unwrap,
)


class TestResolveSection:

    def test_exact_key(self):
        lookup = resolve_section({"OS": {"Caption": "Windows 11"}}, ["OS"])
        assert lookup.found
        assert lookup.name == "OS"
        assert lookup.data == {"Caption": "Windows 11"}

    def test_case_insensitive_fallback(self):
        lookup = resolve_section({"memoryinfo": {"TotalMemoryGB": 16}}, ["Memory", "MemoryInfo"])
        assert lookup.found
        assert lookup.name == "memoryinfo"

    def test_exact_match_wins_over_case_insensitive(self):
        sections = {"os": {"Caption": "lower"}, "OS": {"Caption": "exact"}}
        assert resolve_section(sections, ["OS"]).data == {"Caption": "exact"}

    def test_exact_later_alias_beats_case_insensitive_first_alias(self):
        sections = {"memory": {"a": 1}, "MemoryInfo": {"b": 2}}
        assert resolve_section(sections, ["Memory", "MemoryInfo"]).data == {"b": 2}

    def test_data_envelope_is_unwrapped(self):
        sections = {"Storage": {"status": "OK", "data": {"Drives": [1]}}}
        lookup = resolve_section(sections, "Storage")
        assert lookup.data == {"Drives": [1]}
        assert lookup.status == "OK"

    @pytest.mark.parametrize("status", ["error", "Failed", "ERROR"])
    def test_failed_section_is_skipped_and_never_returns_data(self, status):
        sections = {"Security": {"status": status, "data": {"AntivirusStatus": "On"}}}
        lookup = resolve_section(sections, ["Security"])
        assert lookup.found is False
        assert lookup.skipped is True
        assert lookup.data is None
        assert not lookup

    @pytest.mark.parametrize("empty", [{}, [], "", "   ", None])
    def test_empty_sections_are_not_found(self, empty):
        lookup = resolve_section({"Network": empty}, ["Network"])
        assert lookup.found is False
        assert lookup.skipped is False

    def test_empty_data_envelope_is_not_found(self):
        assert not resolve_section({"Network": {"status": "OK", "data": {}}}, ["Network"])

    def test_missing_section(self):
        assert resolve_section({"OS": {"a": 1}}, ["GPU"]) == SectionLookup()

    def test_non_mapping_sections(self):
        assert resolve_section(None, ["OS"]).found is False
        assert resolve_section(["OS"], ["OS"]).found is False


def test_unwrap_passes_through_plain_payloads():
    assert unwrap([1, 2]) == [1, 2]
    assert unwrap({"a": 1}) == {"a": 1}
    assert unwrap({"Data": {"a": 1}}) == {"a": 1}


def test_iter_statuses_defaults_to_ok_and_skips_empty():
    sections = {
        "OS": {"status": "ok", "data": {"a": 1}},
        "CPU": {"Name": "i7"},
        "GPU": {"status": "Failed"},
        "Audio": {},
    }
    assert dict(iter_statuses(sections)) == {"OS": "OK", "CPU": "OK", "GPU": "FAILED"}


def test_iter_statuses_on_garbage():
    assert list(iter_statuses(None)) == []
