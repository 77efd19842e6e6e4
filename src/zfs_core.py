# --- START OF FILE zfs_core.py ---

"""
Dataset verbs: thin wrappers that build a zfs command, run it and turn
failures into classified errors.
"""

from typing import Dict, List, Optional

import constants
from debug_logging import log_debug, log_info
from models import Dataset, DestroyScope, Property, ReceiveOptions
from parsers.zfs_get import ZfsGetParser
from zfs_errors import DatasetNotFoundError, ZfsError, classify, not_found
from zfs_runner import CommandRunner, ZfsCommandBuilder


def _check(returncode: int, stderr: str, command_parts: List[str], identifier: Optional[str] = None):
    """Raises the classified error if the command failed or complained on stderr."""
    if returncode != 0 or stderr.strip():
        raise classify(stderr, command_parts, returncode, identifier)


def _run_checked(runner: CommandRunner, builder: ZfsCommandBuilder, identifier: Optional[str] = None) -> str:
    returncode, stdout, stderr, command_parts = runner.run(builder)
    _check(returncode, stderr, command_parts, identifier)
    return stdout


# --- Getters ---

def list_datasets(runner: CommandRunner, root: Optional[str] = None,
                  types: Optional[str] = constants.DEFAULT_LIST_TYPES) -> List[Dataset]:
    """All datasets (or those under ``root``) with their properties. A missing root gives []."""
    args = ZfsGetParser.get_command_args(root=root, types=types)
    returncode, stdout, stderr, command_parts = runner.run(args)
    try:
        _check(returncode, stderr, command_parts, root)
    except DatasetNotFoundError:
        if root:
            return []
        raise
    return ZfsGetParser.aggregate(stdout, command_parts)


def get_dataset(runner: CommandRunner, name: str) -> Dataset:
    returncode, stdout, stderr, command_parts = runner.run(ZfsGetParser.get_command_args() + [name])
    _check(returncode, stderr, command_parts, name)
    datasets = ZfsGetParser.aggregate(stdout, command_parts)
    if not datasets:
        raise not_found(name)
    return datasets[0]


def dataset_exists(runner: CommandRunner, name: str) -> bool:
    """True if ``name`` exists. Invalid names still raise."""
    builder = ZfsCommandBuilder('list').script().output_props(['name']).type('all').target(name)
    try:
        _run_checked(runner, builder, name)
    except DatasetNotFoundError:
        return False
    return True


def get_property(runner: CommandRunner, name: str, prop: str) -> Property:
    builder = (ZfsCommandBuilder('get').script().parsable()
               .output_props(constants.ZFS_GET_FIELDS).target(prop).target(name))
    returncode, stdout, stderr, command_parts = runner.run(builder)
    _check(returncode, stderr, command_parts, name)
    datasets = ZfsGetParser.aggregate(stdout, command_parts)
    if not datasets:
        raise not_found(name)
    return datasets[0].get_property(prop)


def list_snapshots(runner: CommandRunner, fs_name: str) -> List[str]:
    """Full names of the snapshots taken directly of ``fs_name``."""
    builder = (ZfsCommandBuilder('list').script().output_props(['name'])
               .type('snapshot').depth(1).target(fs_name))
    stdout = _run_checked(runner, builder, fs_name)
    return [line.strip() for line in stdout.splitlines() if '@' in line]


def list_clones(runner: CommandRunner, snapshot_name: str) -> List[Dataset]:
    """Datasets in the snapshot's pool whose origin is ``snapshot_name``."""
    pool = snapshot_name.split('/', 1)[0].split('@', 1)[0]
    return [ds for ds in list_datasets(runner, root=pool)
            if ds.get_property('origin').value == snapshot_name]


# --- Dataset actions ---

def create_filesystem(runner: CommandRunner, name: str, properties: Optional[Dict[str, str]] = None,
                      create_parents: bool = False) -> Dataset:
    builder = ZfsCommandBuilder('create').create_parents(create_parents)
    for key, value in (properties or {}).items():
        builder.option(key, value)
    builder.target(name)
    _run_checked(runner, builder, name)
    log_info("CORE", f"Created filesystem '{name}'.")
    return get_dataset(runner, name)


def destroy(runner: CommandRunner, name: str, scope: DestroyScope = DestroyScope.NONE, force: bool = False):
    builder = ZfsCommandBuilder('destroy')
    if scope is not DestroyScope.NONE:
        builder.flag(scope.value)
    builder.force(force).target(name)
    _run_checked(runner, builder, name)
    log_info("CORE", f"Destroyed '{name}'{f' ({scope.value})' if scope.value else ''}.")


def set_property(runner: CommandRunner, name: str, prop: str, value: str):
    if not prop or '=' in prop:
        raise ZfsError(f"Invalid property name: '{prop}'")
    _run_checked(runner, ZfsCommandBuilder('set').target(f"{prop}={value}").target(name), name)


def inherit_property(runner: CommandRunner, name: str, prop: str, recursive: bool = False):
    if not prop:
        raise ZfsError("Invalid property name: cannot be empty.")
    _run_checked(runner, ZfsCommandBuilder('inherit').recursive(recursive).target(prop).target(name), name)


def mount(runner: CommandRunner, name: str):
    returncode, _stdout, stderr, command_parts = runner.run(ZfsCommandBuilder('mount').target(name))
    if returncode != 0 and "already mounted" in stderr:
        log_debug("CORE", f"'{name}' is already mounted.")
        return
    _check(returncode, stderr, command_parts, name)


def unmount(runner: CommandRunner, name: str):
    returncode, _stdout, stderr, command_parts = runner.run(ZfsCommandBuilder('unmount').target(name))
    if returncode != 0 and "not currently mounted" in stderr:
        log_debug("CORE", f"'{name}' is not mounted.")
        return
    _check(returncode, stderr, command_parts, name)


def promote(runner: CommandRunner, name: str):
    _run_checked(runner, ZfsCommandBuilder('promote').target(name), name)


# --- Snapshot actions ---

def create_snapshot(runner: CommandRunner, fs_name: str, snapshot_name: str, recursive: bool = False) -> str:
    if not snapshot_name or '@' in snapshot_name:
        raise ZfsError(f"Invalid snapshot name '{snapshot_name}': must be non-empty and contain no '@'.")
    full_name = f"{fs_name}@{snapshot_name}"
    _run_checked(runner, ZfsCommandBuilder('snapshot').recursive(recursive).target(full_name), full_name)
    log_info("CORE", f"Created snapshot '{full_name}'.")
    return full_name


def clone_snapshot(runner: CommandRunner, snapshot_name: str, target_name: str,
                   properties: Optional[Dict[str, str]] = None) -> Dataset:
    if '@' not in snapshot_name:
        raise ZfsError(f"Invalid snapshot name '{snapshot_name}' (missing '@').")
    source_pool = snapshot_name.split('/', 1)[0].split('@', 1)[0]
    target_pool = target_name.split('/', 1)[0]
    if source_pool != target_pool:
        raise ZfsError(f"Cannot clone '{snapshot_name}' into pool '{target_pool}': clones must stay in pool '{source_pool}'.")

    builder = ZfsCommandBuilder('clone').create_parents()
    for key, value in (properties or {}).items():
        builder.option(key, value)
    builder.targets(snapshot_name, target_name)
    _run_checked(runner, builder, snapshot_name)
    return get_dataset(runner, target_name)


# --- Transfer command lines ---

def receive_command(target_name: str, options: Optional[ReceiveOptions] = None) -> ZfsCommandBuilder:
    options = options or ReceiveOptions()
    return (ZfsCommandBuilder('receive')
            .flag('-F', options.force_rollback)
            .flag('-s', options.resumable)
            .flag('-u', options.not_mount)
            .flag('-d', options.discard_first)
            .flag('-e', options.discard_all_but_last)
            .option('origin', options.origin)
            .target(target_name))

# --- END OF FILE zfs_core.py ---
