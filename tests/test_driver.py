"""Tests for vmbuilder.driver module."""

from __future__ import annotations

import pytest

from vmbuilder.driver import Capability, Driver, supports


class TestCapabilities:
    def test_default_driver_declares_nothing(self, driver):
        assert driver.capabilities() == frozenset()
        assert not supports(driver, Capability.HOST_IP_FINDER)

    def test_declared_capabilities(self, driver_factory):
        drv = driver_factory(Capability.HOST_IP_FINDER, Capability.VNC_ADDRESS_FINDER)
        assert supports(drv, Capability.HOST_IP_FINDER)
        assert supports(drv, Capability.VNC_ADDRESS_FINDER)

    def test_undeclared_optional_operations_raise(self, driver):
        with pytest.raises(NotImplementedError, match="host_ip_finder"):
            driver.host_ip()
        with pytest.raises(NotImplementedError, match="vnc_address_finder"):
            driver.vnc_address("0.0.0.0", 5900, 6000)

    def test_required_operations_are_abstract(self):
        class Partial(Driver):
            def create_dvd_drive(self, vm_name, iso_path, generation):
                return 0, 0

        with pytest.raises(TypeError):
            Partial()
