"""Tests for vmbuilder.media module."""

from __future__ import annotations

import pytest

from vmbuilder.exceptions import ConfigurationError, DriverError
from vmbuilder.media import MediaControllerAllocator, parse_controller_coordinate
from vmbuilder.models import MediaSlot


class TestParseControllerCoordinate:
    @pytest.mark.parametrize("raw,expected", [("0", 0), ("1", 1), (" 12 ", 12), (3, 3)])
    def test_valid(self, raw, expected):
        assert parse_controller_coordinate(raw, "controller number") == expected

    @pytest.mark.parametrize("raw", ["-1", "abc", "1.5", "", "²", -2, True])
    def test_invalid(self, raw):
        with pytest.raises(ConfigurationError, match="controller number"):
            parse_controller_coordinate(raw, "controller number")


class TestAttach:
    def test_auto_select(self, driver):
        driver.next_slot = (1, 0)
        slot = MediaControllerAllocator(driver).attach("vm", "/isos/os.iso", generation=2)
        assert slot == MediaSlot(controller_number=1, controller_location=0, existing=False)
        assert driver.calls == [("create_dvd_drive", "vm", "/isos/os.iso", 2)]

    @pytest.mark.parametrize("number,location", [(None, None), ("", "1"), ("0", ""), ("  ", None)])
    def test_partial_coordinates_fall_back_to_auto_select(self, driver, number, location):
        MediaControllerAllocator(driver).attach("vm", "/isos/os.iso", number, location)
        assert driver.call_names() == ["create_dvd_drive"]

    def test_explicit_coordinates(self, driver):
        slot = MediaControllerAllocator(driver).attach("vm", "/isos/os.iso", "1", "0", 1)
        assert slot == MediaSlot(1, 0, existing=False)
        assert driver.calls == [("create_dvd_drive_at", "vm", 1, 0, "/isos/os.iso", 1)]

    def test_malformed_coordinates_fail_before_driver_call(self, driver):
        with pytest.raises(ConfigurationError):
            MediaControllerAllocator(driver).attach("vm", "/isos/os.iso", "one", "0")
        with pytest.raises(ConfigurationError):
            MediaControllerAllocator(driver).attach("vm", "/isos/os.iso", "0", "-3")
        assert driver.calls == []

    def test_driver_failure_propagates(self, driver):
        driver.fail_on = {"create_dvd_drive_at"}
        with pytest.raises(DriverError):
            MediaControllerAllocator(driver).attach("vm", "/isos/os.iso", "0", "1")

    @pytest.mark.parametrize("number,location", [(None, None), ("0", "1")])
    def test_slot_is_never_existing(self, driver, number, location):
        slot = MediaControllerAllocator(driver).attach("vm", "/isos/os.iso", number, location)
        assert slot.existing is False


class TestBootAndMount:
    def test_set_boot_device(self, driver):
        MediaControllerAllocator(driver).set_boot_device("vm", MediaSlot(0, 1), 2)
        assert driver.calls == [("set_boot_dvd_drive", "vm", 0, 1, 2)]

    def test_mount(self, driver):
        MediaControllerAllocator(driver).mount("vm", MediaSlot(1, 1), "/isos/os.iso")
        assert driver.calls == [("mount_dvd_drive", "vm", "/isos/os.iso", 1, 1)]


class TestDetach:
    def test_created_slot_is_deleted(self, driver):
        MediaControllerAllocator(driver).detach("vm", MediaSlot(0, 1, existing=False))
        assert driver.calls == [("delete_dvd_drive", "vm", 0, 1)]

    def test_existing_slot_is_only_unmounted(self, driver):
        MediaControllerAllocator(driver).detach("vm", MediaSlot(0, 1, existing=True))
        assert driver.calls == [("unmount_dvd_drive", "vm", 0, 1)]

    def test_no_slot_is_noop(self, driver):
        MediaControllerAllocator(driver).detach("vm", None)
        assert driver.calls == []

    @pytest.mark.parametrize("existing,failing", [(False, "delete_dvd_drive"), (True, "unmount_dvd_drive")])
    def test_failures_are_logged_not_raised(self, driver, capsys, existing, failing):
        driver.fail_on = {failing}
        MediaControllerAllocator(driver).detach("vm", MediaSlot(0, 1, existing=existing))
        out = capsys.readouterr().out
        assert "[WARN]" in out
        assert f"{failing} failed" in out
