"""Tests for vmbuilder.hostip module."""

from __future__ import annotations

import subprocess
from unittest.mock import patch

import pytest

from vmbuilder.exceptions import HostIPError
from vmbuilder.hostip import (
    InterfaceIPFinder,
    NetworkXmlIPFinder,
    default_host_ip_finders,
    find_host_ip,
)

IP_ADDR_OUTPUT = (
    "4: virbr0    inet 192.168.122.1/24 brd 192.168.122.255 scope global virbr0\\"
    "       valid_lft forever preferred_lft forever\n"
)


class Fixed:
    def __init__(self, address=None, error=None):
        self.address = address
        self.error = error
        self.calls = 0

    def host_ip(self):
        self.calls += 1
        if self.error:
            raise HostIPError(self.error)
        return self.address


class TestInterfaceIPFinder:
    def test_parses_ip_output(self):
        completed = subprocess.CompletedProcess(args=[], returncode=0, stdout=IP_ADDR_OUTPUT, stderr="")
        with patch("vmbuilder.hostip.run", return_value=completed) as mock_run:
            assert InterfaceIPFinder("virbr0").host_ip() == "192.168.122.1"
        assert mock_run.call_args[0][0] == ["ip", "-4", "-o", "addr", "show", "dev", "virbr0"]

    def test_no_address(self):
        completed = subprocess.CompletedProcess(args=[], returncode=0, stdout="", stderr="")
        with patch("vmbuilder.hostip.run", return_value=completed):
            with pytest.raises(HostIPError, match="No IPv4 address found on interface br9"):
                InterfaceIPFinder("br9").host_ip()

    def test_unknown_interface(self):
        error = subprocess.CalledProcessError(1, ["ip"], output="", stderr='Device "br9" does not exist.\n')
        with patch("vmbuilder.hostip.run", side_effect=error):
            with pytest.raises(HostIPError, match='Device "br9" does not exist'):
                InterfaceIPFinder("br9").host_ip()

    def test_missing_ip_binary(self):
        with patch("vmbuilder.hostip.run", side_effect=FileNotFoundError("ip")):
            with pytest.raises(HostIPError, match="ip command not available"):
                InterfaceIPFinder().host_ip()


class TestNetworkXmlIPFinder:
    def test_reads_address(self, tmp_path):
        path = tmp_path / "default.xml"
        path.write_text('<network><name>default</name><ip address="10.0.2.2" netmask="255.255.255.0"/></network>')
        assert NetworkXmlIPFinder(path).host_ip() == "10.0.2.2"

    def test_missing_file(self, tmp_path):
        with pytest.raises(HostIPError, match="Cannot read network definition"):
            NetworkXmlIPFinder(tmp_path / "none.xml").host_ip()

    def test_malformed_xml(self, tmp_path):
        path = tmp_path / "bad.xml"
        path.write_text("<network>")
        with pytest.raises(HostIPError, match="Invalid network definition"):
            NetworkXmlIPFinder(path).host_ip()

    def test_no_ip_element(self, tmp_path):
        path = tmp_path / "noip.xml"
        path.write_text("<network><name>isolated</name></network>")
        with pytest.raises(HostIPError, match="No <ip address>"):
            NetworkXmlIPFinder(path).host_ip()


class TestFindHostIp:
    def test_first_success_wins(self):
        first, second, third = Fixed(error="nope"), Fixed("10.0.0.1"), Fixed("10.0.0.2")
        assert find_host_ip([first, second, third]) == "10.0.0.1"
        assert (first.calls, second.calls, third.calls) == (1, 1, 0)

    def test_all_fail_reports_every_reason(self):
        with pytest.raises(HostIPError, match="no xml; no iface"):
            find_host_ip([Fixed(error="no xml"), Fixed(error="no iface")])

    def test_empty_chain(self):
        with pytest.raises(HostIPError, match="No host IP discovery strategy configured"):
            find_host_ip([])


class TestDefaultFinders:
    def test_linux_prefers_network_xml(self, monkeypatch):
        monkeypatch.setattr("vmbuilder.hostip.sys.platform", "linux")
        finders = default_host_ip_finders()
        assert [type(f) for f in finders] == [NetworkXmlIPFinder, InterfaceIPFinder]

    def test_other_platforms(self, monkeypatch):
        monkeypatch.setattr("vmbuilder.hostip.sys.platform", "darwin")
        assert [type(f) for f in default_host_ip_finders()] == [InterfaceIPFinder]
