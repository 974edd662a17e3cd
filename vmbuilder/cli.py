"""CLI entry points for vmbuilder."""

from __future__ import annotations

import argparse
import dataclasses
import shutil
import tempfile
from pathlib import Path
from typing import List, Optional

from vmbuilder.config import parse_build_config
from vmbuilder.constants import (
    STATE_DRIVER,
    STATE_ISO_PATH,
    STATE_TEMP_DIR,
    STATE_UI,
    STATE_VM_NAME,
    STATE_VMX_PATH,
    STATE_VNC_IP,
    STATE_VNC_PORT,
)
from vmbuilder.driver import Driver
from vmbuilder.exceptions import BuildError
from vmbuilder.hostip import default_host_ip_finders
from vmbuilder.models import BuildConfig
from vmbuilder.pipeline import BasicRunner, Step
from vmbuilder.state import StateBag
from vmbuilder.steps import StepConfigureVNC, StepModifyVM, StepMountDvdDrive, StepMountGuestAdditions
from vmbuilder.ui import ConsoleUi
from vmbuilder.utils import ensure_directory, log


def build_steps(cfg: BuildConfig) -> List[Step]:
    """Compose the pipeline for ``cfg``."""
    steps: List[Step] = []
    if cfg.vmx_path:
        steps.append(StepConfigureVNC(cfg.vnc, default_host_ip_finders()))
    if cfg.iso_path:
        steps.append(StepMountDvdDrive(cfg.dvd, cfg.generation))
    steps.append(StepMountGuestAdditions(cfg.guest_additions, cfg.generation))
    steps.append(StepModifyVM(cfg.modify_commands))
    return steps


def create_driver(cfg: BuildConfig) -> Driver:
    # Only a real build needs the libvirt bindings
    from vmbuilder.libvirt_driver import LibvirtDriver

    driver = LibvirtDriver(uri=cfg.libvirt_uri, network=cfg.network)
    driver.connect()
    return driver


def show_config(cfg: BuildConfig) -> None:
    """Print the resolved build configuration."""
    for field in dataclasses.fields(cfg):
        value = getattr(cfg, field.name)
        if dataclasses.is_dataclass(value):
            print(f"  {field.name}:")
            for sub_field in dataclasses.fields(value):
                print(f"    {sub_field.name}: {getattr(value, sub_field.name)}")
        elif isinstance(value, list):
            print(f"  {field.name}:")
            for item in value:
                print(f"    - {item}")
        else:
            print(f"  {field.name}: {value}")


def run_build(cfg: BuildConfig, driver: Driver, ui: ConsoleUi, temp_dir: str) -> int:
    state = StateBag()
    state.put(STATE_DRIVER, driver)
    state.put(STATE_UI, ui)
    state.put(STATE_VM_NAME, cfg.vm_name)
    state.put(STATE_TEMP_DIR, temp_dir)
    if cfg.vmx_path:
        state.put(STATE_VMX_PATH, cfg.vmx_path)
    if cfg.iso_path:
        state.put(STATE_ISO_PATH, cfg.iso_path)

    result = BasicRunner().run(build_steps(cfg), state)
    if not result.success:
        log("ERROR", f"Build '{cfg.vm_name}' failed in {result.halted_step}: {result.error}")
        return 1

    if STATE_VNC_PORT in state:
        log("INFO", f"VNC: {state.get(STATE_VNC_IP) or '*'}:{state.get(STATE_VNC_PORT)}")
    log("SUCCESS", f"Build '{cfg.vm_name}' finished")
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    parser = argparse.ArgumentParser(description="vmbuilder step pipeline")
    parser.add_argument("build_file", type=Path, help="YAML build file")
    parser.add_argument("--force", action="store_true", help="Allow an existing output directory")
    parser.add_argument("--show-config", action="store_true", help="Show resolved build configuration and exit")
    parser.add_argument("--dry-run", action="store_true", help="Validate the build file and list steps, then exit")
    parser.add_argument("--status-file", type=Path, default=None, help="Progress log file (default: <output_directory>/status.txt)")
    args = parser.parse_args(argv)

    try:
        cfg = parse_build_config(args.build_file, force=args.force)
    except BuildError as exc:
        log("ERROR", str(exc))
        return 1

    if args.show_config:
        show_config(cfg)
        return 0

    if args.dry_run:
        log("INFO", "=== Configuration ===")
        show_config(cfg)
        log("INFO", "=== Steps ===")
        for idx, step in enumerate(build_steps(cfg), start=1):
            log("INFO", f"{idx}. {step.name}")
        log("INFO", "=== Dry-run complete (no VM touched) ===")
        return 0

    ensure_directory(cfg.output_directory)
    ui = ConsoleUi(args.status_file or cfg.output_directory / "status.txt")
    owns_temp_dir = cfg.temp_dir is None
    temp_dir = cfg.temp_dir or tempfile.mkdtemp(prefix=f"vmbuilder-{cfg.vm_name}-")
    driver: Optional[Driver] = None
    try:
        driver = create_driver(cfg)
        return run_build(cfg, driver, ui, temp_dir)
    except BuildError as exc:
        log("ERROR", str(exc))
        return 1
    finally:
        close = getattr(driver, "close", None)
        if close is not None:
            close()
        if owns_temp_dir:
            shutil.rmtree(temp_dir, ignore_errors=True)
