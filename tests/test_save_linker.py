"""
Tests for the save linker: first migration, relinking, idempotence, dry run
and failure handling, all on a real temporary filesystem.
"""
from __future__ import annotations

import dataclasses
import os
from pathlib import Path

import pytest

import savelinker.saves.linker as linker_module
from savelinker.errors import LinkIOError
from savelinker.events import Operation, OpType
from savelinker.saves.linker import PathKind, SaveLinker, inspect_path
from savelinker.saves.paths import cloud_path, resolve_save_path


@pytest.fixture
def linker(config) -> SaveLinker:
    return SaveLinker(config, use_junctions=False)


@pytest.fixture
def dry_linker(config) -> SaveLinker:
    return SaveLinker(dataclasses.replace(config, dry_run=True), use_junctions=False)


@pytest.fixture
def cloud(tmp_path: Path) -> Path:
    return tmp_path / "cloud" / "Foo"


@pytest.fixture
def save(tmp_path: Path) -> Path:
    return tmp_path / "home" / "u" / "Documents" / "Foo"


def make_dir(path: Path, *files: str) -> Path:
    path.mkdir(parents=True, exist_ok=True)
    for name in files:
        (path / name).write_text(name)
    return path


def assert_linked(save: Path, cloud: Path) -> None:
    assert save.is_symlink()
    assert os.path.realpath(save) == os.path.realpath(cloud)
    assert cloud.is_dir() and not cloud.is_symlink()


@pytest.mark.asyncio
async def test_first_migration_moves_and_links(linker, cloud, save):
    make_dir(save, "save.dat")

    ops = await linker.reconcile("Foo", str(cloud), str(save))

    assert ops == [Operation.move(str(save), str(cloud)), Operation.link(str(cloud), str(save))]
    assert (cloud / "save.dat").read_text() == "save.dat"
    assert_linked(save, cloud)


@pytest.mark.asyncio
async def test_second_run_is_noop(linker, cloud, save):
    make_dir(save, "save.dat")
    await linker.reconcile("Foo", str(cloud), str(save))

    ops = await linker.reconcile("Foo", str(cloud), str(save))

    assert ops == [Operation.noop("already_linked", str(save))]
    assert_linked(save, cloud)


@pytest.mark.asyncio
async def test_cloud_wins_over_local_copy(linker, cloud, save):
    make_dir(cloud, "cloud.dat")
    make_dir(save, "local.dat")

    ops = await linker.reconcile("Foo", str(cloud), str(save))

    assert ops == [
        Operation.delete(str(save), "already_in_saves"),
        Operation.link(str(cloud), str(save)),
    ]
    assert_linked(save, cloud)
    assert (save / "cloud.dat").exists()
    assert not (save / "local.dat").exists()
    assert not (cloud / "local.dat").exists()


@pytest.mark.asyncio
async def test_wrong_symlink_is_replaced_without_touching_its_target(linker, tmp_path, cloud, save):
    make_dir(cloud, "cloud.dat")
    elsewhere = make_dir(tmp_path / "elsewhere", "keep.dat")
    save.parent.mkdir(parents=True)
    save.symlink_to(elsewhere, target_is_directory=True)

    ops = await linker.reconcile("Foo", str(cloud), str(save))

    assert [op.type for op in ops] == [OpType.DELETE, OpType.LINK]
    assert ops[0].reason == "wrong_symlink"
    assert_linked(save, cloud)
    assert (elsewhere / "keep.dat").exists()


@pytest.mark.asyncio
async def test_local_file_in_place_of_directory_is_replaced(linker, cloud, save):
    make_dir(cloud, "cloud.dat")
    save.parent.mkdir(parents=True)
    save.write_text("stray")

    ops = await linker.reconcile("Foo", str(cloud), str(save))

    assert ops[0] == Operation.delete(str(save), "already_in_saves")
    assert_linked(save, cloud)


@pytest.mark.asyncio
async def test_cloud_only_creates_link_and_parents(linker, cloud, save):
    make_dir(cloud, "cloud.dat")
    assert not save.parent.exists()

    ops = await linker.reconcile("Foo", str(cloud), str(save))

    assert ops == [Operation.link(str(cloud), str(save))]
    assert_linked(save, cloud)


@pytest.mark.asyncio
async def test_cloud_file_is_deleted_then_local_is_migrated(linker, cloud, save):
    cloud.parent.mkdir(parents=True)
    cloud.write_text("not a directory")
    make_dir(save, "save.dat")

    ops = await linker.reconcile("Foo", str(cloud), str(save))

    assert ops == [
        Operation.delete(str(cloud), "not_a_dir"),
        Operation.move(str(save), str(cloud)),
        Operation.link(str(cloud), str(save)),
    ]
    assert (cloud / "save.dat").exists()
    assert_linked(save, cloud)


@pytest.mark.asyncio
async def test_empty_cloud_dir_is_not_authoritative(linker, cloud, save):
    make_dir(cloud)
    make_dir(save, "save.dat")

    ops = await linker.reconcile("Foo", str(cloud), str(save))

    assert ops == [
        Operation.delete(str(cloud), "empty_dir"),
        Operation.move(str(save), str(cloud)),
        Operation.link(str(cloud), str(save)),
    ]
    assert (cloud / "save.dat").exists()
    assert_linked(save, cloud)


@pytest.mark.asyncio
async def test_nothing_to_work_with_is_left_alone(linker, cloud, save):
    ops = await linker.reconcile("Foo", str(cloud), str(save))

    assert ops == [Operation.noop("unknown", str(save))]
    assert not cloud.exists()
    assert not os.path.lexists(save)


@pytest.mark.asyncio
async def test_empty_cloud_and_dangling_symlink_is_left_alone(linker, tmp_path, cloud, save):
    make_dir(cloud)
    save.parent.mkdir(parents=True)
    save.symlink_to(tmp_path / "gone", target_is_directory=True)

    ops = await linker.reconcile("Foo", str(cloud), str(save))

    assert ops == [Operation.noop("unknown", str(save))]
    assert cloud.is_dir()
    assert save.is_symlink()


@pytest.mark.asyncio
async def test_same_path_is_never_touched(linker, cloud):
    make_dir(cloud, "save.dat")

    ops = await linker.reconcile("Foo", str(cloud), str(cloud))

    assert ops == [Operation.noop("same_path", str(cloud))]
    assert (cloud / "save.dat").exists()


@pytest.mark.asyncio
async def test_dry_run_reports_without_touching_disk(dry_linker, cloud, save):
    cloud.parent.mkdir(parents=True)
    cloud.write_text("not a directory")
    make_dir(save, "save.dat")

    ops = await dry_linker.reconcile("Foo", str(cloud), str(save))

    assert [op.type for op in ops] == [OpType.DELETE, OpType.MOVE, OpType.LINK]
    assert cloud.is_file()
    assert (save / "save.dat").exists()
    assert not save.is_symlink()


@pytest.mark.asyncio
async def test_link_failure_reports_applied_operations(linker, monkeypatch, cloud, save):
    make_dir(save, "save.dat")

    def refuse(src, dst, junction=False):
        raise PermissionError(13, "Permission denied", dst)

    monkeypatch.setattr(linker_module, "make_link", refuse)

    with pytest.raises(LinkIOError) as excinfo:
        await linker.reconcile("Foo", str(cloud), str(save))

    err = excinfo.value
    assert err.code == "io_failure"
    assert err.path == str(save)
    assert err.operations == [Operation.move(str(save), str(cloud))]
    # the data made it to the cloud folder even though linking failed
    assert (cloud / "save.dat").exists()


def test_inspect_path_kinds(tmp_path):
    directory = make_dir(tmp_path / "dir")
    file_path = tmp_path / "file"
    file_path.write_text("x")
    link = tmp_path / "link"
    link.symlink_to(directory, target_is_directory=True)

    assert inspect_path(str(tmp_path / "missing")).kind is PathKind.ABSENT
    assert inspect_path(str(directory)).kind is PathKind.DIRECTORY
    assert inspect_path(str(file_path)).kind is PathKind.OTHER
    state = inspect_path(str(link))
    assert state.kind is PathKind.SYMLINK
    assert state.target == os.path.realpath(directory)


@pytest.mark.asyncio
async def test_documents_scenario(linker, tmp_path, home_dir):
    games_dir = str(tmp_path / "games")
    save_dir = resolve_save_path("Foo", "~/Documents/Foo", games_dir, str(home_dir))
    cloud_dir = cloud_path("Foo", str(tmp_path / "cloud"))
    assert save_dir == str(home_dir / "Documents" / "Foo")
    assert cloud_dir == str(tmp_path / "cloud" / "Foo")
    make_dir(Path(save_dir), "save.dat")

    ops = await linker.reconcile("Foo", cloud_dir, save_dir)

    assert ops == [Operation.move(save_dir, cloud_dir), Operation.link(cloud_dir, save_dir)]
    assert (Path(cloud_dir) / "save.dat").exists()
    assert_linked(Path(save_dir), Path(cloud_dir))


@pytest.mark.asyncio
async def test_save_path_containing_the_cloud_is_never_touched(linker, home_dir):
    cloud = make_dir(home_dir / "Dropbox" / "Saves" / "Foo", "save.dat")

    ops = await linker.reconcile("Foo", str(cloud), str(home_dir))

    assert ops == [Operation.noop("nested_path", str(home_dir))]
    assert (cloud / "save.dat").read_text() == "save.dat"
    assert home_dir.is_dir() and not home_dir.is_symlink()


@pytest.mark.asyncio
async def test_save_path_inside_the_cloud_is_never_touched(linker, cloud):
    make_dir(cloud, "save.dat")
    inner = make_dir(cloud / "profile", "slot1.dat")

    ops = await linker.reconcile("Foo", str(cloud), str(inner))

    assert ops == [Operation.noop("nested_path", str(inner))]
    assert (cloud / "save.dat").exists()
    assert (inner / "slot1.dat").exists()


@pytest.mark.asyncio
async def test_save_path_reached_through_a_parent_symlink_is_same_path(linker, tmp_path, cloud):
    make_dir(cloud, "save.dat")
    alias = tmp_path / "alias"
    alias.symlink_to(cloud.parent, target_is_directory=True)

    ops = await linker.reconcile("Foo", str(cloud), str(alias / "Foo"))

    assert ops == [Operation.noop("same_path", str(alias / "Foo"))]
    assert (cloud / "save.dat").exists()


@pytest.mark.asyncio
async def test_empty_migrated_save_is_already_linked_on_second_run(linker, cloud, save):
    make_dir(save)
    first = await linker.reconcile("Foo", str(cloud), str(save))
    assert first == [Operation.move(str(save), str(cloud)), Operation.link(str(cloud), str(save))]

    ops = await linker.reconcile("Foo", str(cloud), str(save))

    assert ops == [Operation.noop("already_linked", str(save))]
    assert_linked(save, cloud)


@pytest.mark.asyncio
async def test_reconcile_paths_migrates_first_copy_and_links_the_rest(linker, tmp_path, cloud):
    absent = tmp_path / "home" / "u" / "AppData" / "Roaming" / "Foo"
    data = make_dir(tmp_path / "public" / "Documents" / "Foo", "save.dat")

    ops = await linker.reconcile_paths("Foo", str(cloud), [str(absent), str(data)])

    assert ops == [
        Operation.move(str(data), str(cloud)),
        Operation.link(str(cloud), str(data)),
        Operation.link(str(cloud), str(absent)),
    ]
    assert (cloud / "save.dat").exists()
    assert_linked(absent, cloud)
    assert_linked(data, cloud)


@pytest.mark.asyncio
async def test_reconcile_paths_replaces_later_copies_with_links(linker, tmp_path, cloud):
    first = make_dir(tmp_path / "a" / "Foo", "first.dat")
    second = make_dir(tmp_path / "b" / "Foo", "second.dat")

    ops = await linker.reconcile_paths("Foo", str(cloud), [str(first), str(second)])

    assert ops == [
        Operation.move(str(first), str(cloud)),
        Operation.link(str(cloud), str(first)),
        Operation.delete(str(second), "already_in_saves"),
        Operation.link(str(cloud), str(second)),
    ]
    assert (cloud / "first.dat").exists()
    assert not (cloud / "second.dat").exists()
    assert_linked(second, cloud)


@pytest.mark.asyncio
async def test_reconcile_paths_links_every_path_to_existing_cloud(linker, tmp_path, cloud):
    make_dir(cloud, "save.dat")
    paths = [tmp_path / "a" / "Foo", tmp_path / "b" / "Foo"]

    ops = await linker.reconcile_paths("Foo", str(cloud), [str(p) for p in paths])

    assert ops == [Operation.link(str(cloud), str(p)) for p in paths]
    for path in paths:
        assert_linked(path, cloud)


@pytest.mark.asyncio
async def test_reconcile_paths_without_data_is_unknown_everywhere(linker, tmp_path, cloud):
    paths = [str(tmp_path / "a" / "Foo"), str(tmp_path / "b" / "Foo")]

    ops = await linker.reconcile_paths("Foo", str(cloud), paths)

    assert ops == [Operation.noop("unknown", p) for p in paths]
    assert not cloud.exists()


@pytest.mark.asyncio
async def test_reconcile_paths_failure_keeps_earlier_records(linker, monkeypatch, tmp_path, cloud):
    make_dir(cloud, "save.dat")
    first, second = tmp_path / "a" / "Foo", tmp_path / "b" / "Foo"
    real_link = linker_module.make_link

    def link_once(src, dst, junction=False):
        if dst == str(second):
            raise PermissionError(13, "Permission denied", dst)
        real_link(src, dst, junction)

    monkeypatch.setattr(linker_module, "make_link", link_once)

    with pytest.raises(LinkIOError) as excinfo:
        await linker.reconcile_paths("Foo", str(cloud), [str(first), str(second)])

    assert excinfo.value.operations == [Operation.link(str(cloud), str(first))]
    assert_linked(first, cloud)
