"""Tests for vmbuilder.templating module."""

from __future__ import annotations

import pytest

from vmbuilder.exceptions import ConfigurationError
from vmbuilder.templating import render_command, render_commands


class TestRenderCommand:
    def test_substitutes_name_and_path(self):
        assert render_command("virsh attach {{ Name }} {{ Path }}/seed.iso", "vm1", "/tmp/b") == (
            "virsh attach vm1 /tmp/b/seed.iso"
        )

    def test_plain_text_untouched(self):
        assert render_command("echo 'a & b' > /dev/null", "vm1", "/tmp") == "echo 'a & b' > /dev/null"

    def test_no_html_escaping(self):
        assert render_command("echo {{ Name }}", "<vm&1>", "/tmp") == "echo <vm&1>"

    def test_undefined_variable(self):
        with pytest.raises(ConfigurationError, match="Error preparing modifyvm command"):
            render_command("echo {{ Nmae }}", "vm1", "/tmp")

    def test_syntax_error(self):
        with pytest.raises(ConfigurationError, match="Error preparing modifyvm command"):
            render_command("echo {{ Name ", "vm1", "/tmp")


class TestRenderCommands:
    def test_renders_all(self):
        assert render_commands(["a {{ Name }}", "b {{ Path }}"], "vm", "/p") == ["a vm", "b /p"]

    def test_one_bad_template_fails_all(self):
        with pytest.raises(ConfigurationError):
            render_commands(["ok {{ Name }}", "{% if %}"], "vm", "/p")
