"""
Tests for the package list parser.
"""

import pytest

from devenv_installer.lib.pkglist import (
    PackageEntry,
    SourceKind,
    parse,
    parse_entry,
    parse_with_errors,
    validate,
)


class TestParseEntry:
    """Tests for single-entry parsing."""

    def test_bare_name(self):
        entry, reason = parse_entry("kitty")
        assert reason is None
        assert entry == PackageEntry(name="kitty")
        assert entry.kind is SourceKind.DEFAULT

    def test_source_and_condition(self):
        entry, _ = parse_entry("aur:hyprshot|NVIDIA")
        assert entry.name == "hyprshot"
        assert entry.source == "aur"
        assert entry.condition == "nvidia"
        assert entry.kind is SourceKind.AUR

    def test_other_source_kind(self):
        entry, _ = parse_entry("flatpak:com.valvesoftware.Steam")
        assert entry.kind is SourceKind.OTHER
        assert entry.name == "com.valvesoftware.Steam"

    @pytest.mark.parametrize(
        "text",
        ["a|b|c", "pkg|", "aur:", ":pkg", "a:b:c", "   "],
    )
    def test_malformed(self, text):
        entry, reason = parse_entry(text)
        assert entry is None
        assert reason

    def test_spec_roundtrips_text(self):
        entry, _ = parse_entry("aur:yay-bin|laptop")
        assert entry.spec() == "aur:yay-bin|laptop"

    def test_empty_name_rejected_by_dataclass(self):
        with pytest.raises(ValueError):
            PackageEntry(name="")


class TestEffectiveSource:
    """Default installers per distribution."""

    def test_defaults(self):
        entry = PackageEntry(name="git")
        assert entry.effective_source("arch") == "pacman"
        assert entry.effective_source("ubuntu") == "apt"

    def test_explicit_source_wins(self):
        assert PackageEntry(name="x", source="aur").effective_source("arch") == "aur"


class TestParse:
    """Tests for whole-file parsing."""

    LINES = [
        "# Base packages",
        "",
        "# --- Core ---",
        "git",
        "curl|laptop",
        "# just a comment",
        "# --- Extras ---",
        "bad::line||x",
        "aur:yay-bin",
        "pkg|",
    ]

    def test_file_order_and_sections(self):
        entries = parse(self.LINES)
        assert [e.name for e in entries] == ["git", "curl", "yay-bin"]
        assert [e.section for e in entries] == ["Core", "Core", "Extras"]
        assert [e.line_no for e in entries] == [4, 5, 9]

    def test_comment_before_any_section(self):
        entries = parse(["# header", "zsh"])
        assert entries[0].section is None

    def test_plain_comment_keeps_section(self):
        entries = parse(self.LINES)
        assert entries[1].section == "Core"

    def test_validate_collects_every_error(self):
        errors = validate(self.LINES)
        assert [e.line_no for e in errors] == [8, 10]
        assert errors[0].raw == "bad::line||x"
        assert "line 8" in str(errors[0])

    def test_bad_line_does_not_drop_neighbours(self):
        entries, errors = parse_with_errors(["git", "a|b|c", "curl"])
        assert [e.name for e in entries] == ["git", "curl"]
        assert len(errors) == 1

    def test_clean_file_has_no_errors(self):
        assert validate(["git", "# --- S ---", "curl|amd"]) == []

    def test_crlf_lines(self):
        entries = parse(["git\r\n", "curl\r\n"])
        assert [e.name for e in entries] == ["git", "curl"]
