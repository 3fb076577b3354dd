"""
Save directory linker.

Converges one game's two save locations to the canonical layout: the real
directory lives in the cloud folder (``<saves_dir>/<name>``) and the path the
game reads from is a symlink to it (a directory junction on Windows).

State is inspected with lstat semantics so a foreign symlink is never
followed into someone else's data, and is re-read after every mutation
instead of being reasoned about from the earlier snapshot.
"""

import os
import stat
import shutil
import asyncio
import logging
import functools
import subprocess
from dataclasses import dataclass
from enum import Enum
from typing import List, Optional

from ..config import IS_WINDOWS, LinkerConfig
from ..errors import LinkError, LinkIOError
from ..events import (
    Operation,
    OpType,
    NOT_A_DIR,
    ALREADY_IN_SAVES,
    WRONG_SYMLINK,
    EMPTY_DIR,
    ALREADY_LINKED,
    SAME_PATH,
    NESTED_PATH,
    UNKNOWN,
)

logger = logging.getLogger(__name__)


class PathKind(str, Enum):
    ABSENT = "absent"
    DIRECTORY = "directory"
    SYMLINK = "symlink"
    OTHER = "other"


@dataclass(frozen=True)
class PathState:
    path: str
    kind: PathKind
    target: Optional[str] = None  # fully resolved target, symlinks only

    @property
    def exists(self) -> bool:
        return self.kind is not PathKind.ABSENT


def _is_junction(path: str) -> bool:
    isjunction = getattr(os.path, "isjunction", None)
    return bool(isjunction and isjunction(path))


def inspect_path(path: str) -> PathState:
    """lstat ``path`` and classify it. Never follows the final symlink."""
    try:
        st = os.lstat(path)
    except (FileNotFoundError, NotADirectoryError):
        return PathState(path, PathKind.ABSENT)

    if stat.S_ISLNK(st.st_mode) or _is_junction(path):
        return PathState(path, PathKind.SYMLINK, os.path.realpath(path))
    if stat.S_ISDIR(st.st_mode):
        return PathState(path, PathKind.DIRECTORY)
    return PathState(path, PathKind.OTHER)


def is_empty_dir(path: str) -> bool:
    with os.scandir(path) as entries:
        return next(entries, None) is None


def remove_path(state: PathState) -> None:
    """Delete whatever ``state`` describes; symlinks are unlinked, never followed."""
    if state.kind is PathKind.DIRECTORY:
        shutil.rmtree(state.path)
    elif state.kind is PathKind.SYMLINK and IS_WINDOWS and os.path.isdir(state.path):
        os.rmdir(state.path)  # directory junction
    else:
        os.unlink(state.path)


def move_dir(src: str, dst: str) -> None:
    os.makedirs(os.path.dirname(dst), exist_ok=True)
    shutil.move(src, dst)


def make_link(src: str, dst: str, junction: bool = False) -> None:
    """Create ``dst`` pointing at directory ``src``, creating parents first."""
    os.makedirs(os.path.dirname(dst), exist_ok=True)
    if junction:
        subprocess.run(["cmd", "/c", "mklink", "/J", dst, src], check=True, capture_output=True)
    else:
        os.symlink(src, dst, target_is_directory=True)


def _resolve_parent(path: str) -> str:
    """Resolve every component but the last, which may be our own link."""
    path = os.path.abspath(path)
    return os.path.join(os.path.realpath(os.path.dirname(path)), os.path.basename(path))


def _is_inside(child: str, parent: str) -> bool:
    return child.startswith(parent.rstrip(os.sep) + os.sep)


def path_overlap(cloud_dir: str, save_dir: str) -> Optional[str]:
    """
    SAME_PATH or NESTED_PATH when the two locations share data, else None.

    Compared both as written and with parent symlinks resolved, so a save
    path of ``~`` or ``~/Dropbox`` never gets the cloud copy deleted out from
    under it.
    """
    pairs = [
        (os.path.normcase(os.path.abspath(cloud_dir)), os.path.normcase(os.path.abspath(save_dir))),
        (os.path.normcase(os.path.realpath(cloud_dir)), os.path.normcase(_resolve_parent(save_dir))),
    ]
    if any(cloud == save for cloud, save in pairs):
        return SAME_PATH
    if any(_is_inside(cloud, save) or _is_inside(save, cloud) for cloud, save in pairs):
        return NESTED_PATH
    return None


class SaveLinker:
    """Decides and applies the delete / move / link steps for one game at a time."""

    def __init__(self, config: LinkerConfig, use_junctions: bool = IS_WINDOWS):
        self.dry_run = config.dry_run
        self.use_junctions = use_junctions

    async def _io(self, func, *args):
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, functools.partial(func, *args))

    async def _apply(self, ops: List[Operation], op: Operation, func, *args) -> None:
        """Run a mutation (unless dry-run) and record it once it succeeded."""
        if not self.dry_run:
            try:
                await self._io(func, *args)
            except (OSError, subprocess.CalledProcessError) as e:
                path = op.item or op.dst
                raise LinkIOError(path, f"{op.type.value} failed: {e}") from e
        ops.append(op)

    async def _reload(self, path: str) -> PathState:
        """State of ``path`` after it was deleted."""
        if self.dry_run:
            return PathState(path, PathKind.ABSENT)
        return await self._io(inspect_path, path)

    async def _link(self, ops: List[Operation], cloud_dir: str, save_dir: str) -> None:
        await self._apply(
            ops, Operation.link(cloud_dir, save_dir), make_link, cloud_dir, save_dir, self.use_junctions
        )

    async def reconcile(self, name: str, cloud_dir: str, save_dir: str) -> List[Operation]:
        """
        Converge ``cloud_dir`` / ``save_dir`` and return the applied operations.

        Raises:
            LinkIOError: a filesystem call failed; ``error.operations`` holds
                the records that were applied before the failure.
        """
        ops: List[Operation] = []
        try:
            await self._reconcile(name, cloud_dir, save_dir, ops)
        except LinkError as e:
            e.operations = list(ops)
            raise
        except OSError as e:
            err = LinkIOError(e.filename or save_dir, str(e))
            err.operations = list(ops)
            raise err from e

        for op in ops:
            logger.debug(f"[SaveLinker] {name}: {op.to_dict()}")
        return ops

    async def reconcile_paths(self, name: str, cloud_dir: str, save_dirs: List[str]) -> List[Operation]:
        """
        Converge every save location of one game onto ``cloud_dir``.

        Locations are handled in order: the first real directory is migrated
        and later copies are replaced by links. Locations that had nothing to
        link to before the migration are linked once it happened.
        """
        ops: List[Operation] = []
        unlinked: List[str] = []
        try:
            for save_dir in save_dirs:
                path_ops = await self.reconcile(name, cloud_dir, save_dir)
                if path_ops == [Operation.noop(UNKNOWN, save_dir)]:
                    unlinked.append(save_dir)
                else:
                    ops.extend(path_ops)

            migrated = any(op.type is OpType.LINK or op.reason == ALREADY_LINKED for op in ops)
            for save_dir in unlinked:
                if migrated:
                    ops.extend(await self.reconcile(name, cloud_dir, save_dir))
                else:
                    ops.append(Operation.noop(UNKNOWN, save_dir))
        except LinkError as e:
            e.operations = ops + list(e.operations)
            raise
        return ops

    async def _reconcile(self, name: str, cloud_dir: str, save_dir: str, ops: List[Operation]) -> None:
        overlap = await self._io(path_overlap, cloud_dir, save_dir)
        if overlap is not None:
            logger.warning(f"[SaveLinker] {name}: {save_dir} overlaps the cloud path {cloud_dir}, skipping")
            ops.append(Operation.noop(overlap, save_dir))
            return

        cloud = await self._io(inspect_path, cloud_dir)
        if cloud.exists and cloud.kind is not PathKind.DIRECTORY:
            await self._apply(ops, Operation.delete(cloud_dir, NOT_A_DIR), remove_path, cloud)
            cloud = await self._reload(cloud_dir)

        cloud_has_data = False
        if cloud.kind is PathKind.DIRECTORY:
            cloud_has_data = not await self._io(is_empty_dir, cloud_dir)

        save = await self._io(inspect_path, save_dir)

        if cloud.kind is PathKind.DIRECTORY and save.kind is PathKind.SYMLINK:
            # an empty cloud dir we already link to is still ours
            cloud_real = await self._io(os.path.realpath, cloud_dir)
            if save.target == cloud_real:
                ops.append(Operation.noop(ALREADY_LINKED, save_dir))
                return

        if cloud_has_data:
            # Case A: the cloud copy is authoritative
            if save.kind is PathKind.SYMLINK:
                await self._apply(ops, Operation.delete(save_dir, WRONG_SYMLINK), remove_path, save)
            elif save.exists:
                logger.info(f"[SaveLinker] {name}: {save_dir} is not linked, replacing with cloud copy")
                await self._apply(ops, Operation.delete(save_dir, ALREADY_IN_SAVES), remove_path, save)
            await self._link(ops, cloud_dir, save_dir)

        elif save.kind is PathKind.DIRECTORY:
            # Case B: first migration of this game into the cloud folder
            if cloud.exists:
                await self._apply(ops, Operation.delete(cloud_dir, EMPTY_DIR), remove_path, cloud)
            await self._apply(ops, Operation.move(save_dir, cloud_dir), move_dir, save_dir, cloud_dir)
            await self._link(ops, cloud_dir, save_dir)

        else:
            # Case C: no source of truth, touch nothing
            ops.append(Operation.noop(UNKNOWN, save_dir))
