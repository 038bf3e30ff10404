import os

import pytest

from barekit.bmfs import (
    BLOCK_SIZE,
    BOOT_OFFSET,
    DIRECTORY_OFFSET,
    DISK_INFO_OFFSET,
    ENTRY_SIZE,
    FS_TAG,
    MBR_SIZE,
    MIB,
    MINIMUM_DISK_SIZE,
    BMFSDisk,
    BMFSError,
    DirectoryEntry,
    initialize,
    main,
    parse_disk_size,
)


@pytest.fixture
def small_disk(tmp_path):
    path = tmp_path / "small.img"
    initialize(path, "6M")
    return path


@pytest.fixture
def large_disk(tmp_path):
    path = tmp_path / "large.img"
    initialize(path, "10M")
    return path


def test_parse_disk_size_equivalent_spellings():
    assert parse_disk_size("6M") == MINIMUM_DISK_SIZE
    assert parse_disk_size("6m") == MINIMUM_DISK_SIZE
    assert parse_disk_size("6144K") == MINIMUM_DISK_SIZE
    assert parse_disk_size(str(MINIMUM_DISK_SIZE)) == MINIMUM_DISK_SIZE


def test_parse_disk_size_larger_units_agree():
    assert parse_disk_size("1G") == parse_disk_size("1024M")
    assert parse_disk_size("1T") == parse_disk_size("1024G")


@pytest.mark.parametrize(
    "text, message",
    [
        ("", "at least"),
        ("M", "numeric"),
        ("5M", "at least"),
        ("0K", "at least"),
        ("6MB", "Invalid disk size"),
        ("6X", "Invalid disk size"),
        ("99999999999999999999999", "too large"),
        ("17179869184P", "too large"),
    ],
)
def test_parse_disk_size_errors(text, message):
    with pytest.raises(BMFSError, match=message):
        parse_disk_size(text)


def test_initialize_creates_empty_formatted_image(small_disk):
    assert os.path.getsize(small_disk) == MINIMUM_DISK_SIZE
    raw = small_disk.read_bytes()
    assert raw[DISK_INFO_OFFSET : DISK_INFO_OFFSET + len(FS_TAG)] == FS_TAG
    with BMFSDisk(small_disk) as disk:
        assert disk.is_formatted()
        assert disk.entries() == []
        assert disk.disk_size_mib * MIB == MINIMUM_DISK_SIZE


def test_initialize_writes_mbr_boot_and_kernel(tmp_path):
    mbr = tmp_path / "mbr.sys"
    boot = tmp_path / "boot.sys"
    kernel = tmp_path / "kernel.bin"
    mbr.write_bytes(b"\x55" * 600)
    boot.write_bytes(b"boot" * 10)
    kernel.write_bytes(b"kern" * 5)
    disk_path = tmp_path / "disk.img"

    initialize(disk_path, "6M", mbr, boot, kernel)

    raw = disk_path.read_bytes()
    assert raw[:MBR_SIZE] == b"\x55" * MBR_SIZE
    assert raw[MBR_SIZE] == 0
    payload = b"boot" * 10 + b"kern" * 5
    assert raw[BOOT_OFFSET : BOOT_OFFSET + len(payload)] == payload
    with BMFSDisk(disk_path) as disk:
        assert disk.is_formatted()


def test_initialize_short_mbr_fails(tmp_path):
    mbr = tmp_path / "mbr.sys"
    mbr.write_bytes(b"\x01" * 100)
    with pytest.raises(BMFSError, match="Failed to read file"):
        initialize(tmp_path / "disk.img", "6M", mbr)


def test_initialize_missing_input_leaves_no_disk(tmp_path):
    disk_path = tmp_path / "disk.img"
    with pytest.raises(BMFSError, match="MBR"):
        initialize(disk_path, "6M", tmp_path / "missing.sys")
    assert not disk_path.exists()


def test_open_missing_disk_raises(tmp_path):
    with pytest.raises(BMFSError, match="Unable to open disk"):
        BMFSDisk(tmp_path / "nope.img")


def test_directory_entry_round_trip():
    entry = DirectoryEntry("kernel.bin", 3, 2, 1234, 0)
    raw = entry.pack()
    assert len(raw) == ENTRY_SIZE
    assert raw[: len(b"kernel.bin")] == b"kernel.bin"
    assert raw[len(b"kernel.bin")] == 0
    assert DirectoryEntry.unpack(raw) == entry


def test_directory_entry_markers():
    assert DirectoryEntry.unpack(bytes(ENTRY_SIZE)).is_end
    deleted = DirectoryEntry.unpack(b"\x01abc" + bytes(ENTRY_SIZE - 4))
    assert deleted.is_deleted
    assert not deleted.is_end


def test_directory_entry_rejects_bad_input():
    with pytest.raises(BMFSError):
        DirectoryEntry("x" * 40).pack()
    with pytest.raises(BMFSError):
        DirectoryEntry.unpack(b"short")


def test_create_write_read_round_trip(small_disk, tmp_path):
    payload = bytes(range(256)) * 100
    source = tmp_path / "source.bin"
    source.write_bytes(payload)
    destination = tmp_path / "out.bin"

    with BMFSDisk(small_disk) as disk:
        created = disk.create("hello.txt", 2)
        assert created.starting_block == 1
        assert disk.write("hello.txt", source) == len(payload)
        assert disk.read("hello.txt", destination) == len(payload)
        assert disk.find("hello.txt").file_size == len(payload)

    assert destination.read_bytes() == payload
    with BMFSDisk(small_disk) as reopened:
        assert reopened.find("hello.txt").file_size == len(payload)


def test_data_lands_at_starting_block(small_disk, tmp_path):
    source = tmp_path / "data.bin"
    source.write_bytes(b"payload")
    with BMFSDisk(small_disk) as disk:
        entry = disk.create("data.bin", 2)
        disk.write("data.bin", source)
    raw = small_disk.read_bytes()
    offset = entry.starting_block * BLOCK_SIZE
    assert raw[offset : offset + len(b"payload")] == b"payload"


def test_odd_size_is_rounded_up(large_disk):
    with BMFSDisk(large_disk) as disk:
        one = disk.create("one", 1)
        two = disk.create("two", 2)
        assert one.reserved_blocks == two.reserved_blocks


def test_files_do_not_overlap(large_disk):
    with BMFSDisk(large_disk) as disk:
        first = disk.create("a", 2)
        second = disk.create("b", 2)
        assert second.starting_block >= first.starting_block + first.reserved_blocks
        assert [e.name for e in disk.entries()] == ["a", "b"]


def test_create_fails_without_room(small_disk):
    with BMFSDisk(small_disk) as disk:
        with pytest.raises(BMFSError, match="Cannot create file"):
            disk.create("big", 4)
        disk.create("fits", 2)
        with pytest.raises(BMFSError, match="Cannot create file"):
            disk.create("more", 2)


def test_create_duplicate_fails(large_disk):
    with BMFSDisk(large_disk) as disk:
        disk.create("a", 2)
        with pytest.raises(BMFSError, match="already exists"):
            disk.create("a", 2)


def test_create_rejects_bad_arguments(small_disk):
    with BMFSDisk(small_disk) as disk:
        with pytest.raises(BMFSError, match="Invalid file size"):
            disk.create("a", 0)
        with pytest.raises(BMFSError, match="Invalid file name"):
            disk.create("", 2)
        with pytest.raises(BMFSError, match="Invalid file name"):
            disk.create("n" * 40, 2)


def test_delete_marks_entry_and_frees_slot(small_disk):
    with BMFSDisk(small_disk) as disk:
        disk.create("gone", 2)
        disk.delete("gone")
        assert disk.find("gone") is None
        assert disk.entries() == []
    raw = small_disk.read_bytes()
    assert raw[DIRECTORY_OFFSET] == 0x01

    with BMFSDisk(small_disk) as disk:
        disk.create("new", 2)
        assert [e.name for e in disk.entries()] == ["new"]
    raw = small_disk.read_bytes()
    assert raw[DIRECTORY_OFFSET : DIRECTORY_OFFSET + 3] == b"new"


def test_delete_missing_fails(small_disk):
    with BMFSDisk(small_disk) as disk:
        with pytest.raises(BMFSError, match="not found"):
            disk.delete("ghost")


def test_write_requires_entry_and_space(small_disk, tmp_path):
    source = tmp_path / "big.bin"
    with open(source, "wb") as handle:
        handle.truncate(2 * MIB + 1)
    with BMFSDisk(small_disk) as disk:
        with pytest.raises(BMFSError, match="must first be created"):
            disk.write("big.bin", source)
        disk.create("big.bin", 2)
        with pytest.raises(BMFSError, match="Not enough reserved space"):
            disk.write("big.bin", source)
        assert disk.find("big.bin").file_size == 0


def test_unformatted_disk(tmp_path):
    path = tmp_path / "blank.img"
    with open(path, "wb") as handle:
        handle.truncate(MINIMUM_DISK_SIZE)
    with BMFSDisk(path) as disk:
        assert not disk.is_formatted()
        with pytest.raises(BMFSError, match="Not a valid BMFS drive"):
            disk.create("a", 2)
        disk.format()
        assert disk.is_formatted()
        assert disk.entries() == []


def test_format_clears_directory(large_disk):
    with BMFSDisk(large_disk) as disk:
        disk.create("a", 2)
        disk.format()
        assert disk.entries() == []
    with BMFSDisk(large_disk) as disk:
        assert disk.entries() == []


def test_listing_shows_entries(small_disk, tmp_path):
    source = tmp_path / "f.bin"
    source.write_bytes(b"abc")
    with BMFSDisk(small_disk) as disk:
        entry = disk.create("f.bin", 2)
        disk.write("f.bin", source)
        text = disk.listing()
    lines = text.splitlines()
    assert lines[0] == str(small_disk)
    assert lines[2].startswith("Name")
    assert set(lines[3]) == {"="}
    assert lines[4].split() == ["f.bin", "3", str(entry.reserved_blocks * 2)]


def test_main_without_arguments_prints_usage(capsys):
    assert main([]) == 0
    assert "Usage:" in capsys.readouterr().out


def test_main_initialize(tmp_path, capsys):
    disk_path = tmp_path / "disk.img"
    assert main([str(disk_path), "initialize"]) == 1
    assert main([str(disk_path), "initialize", "6M"]) == 0
    assert "Disk initialization complete." in capsys.readouterr().out
    assert os.path.getsize(disk_path) == MINIMUM_DISK_SIZE
    assert main([str(disk_path), "initialize", "1M"]) == 1
    assert "Error:" in capsys.readouterr().out


def test_main_file_commands(large_disk, tmp_path, monkeypatch, capsys):
    monkeypatch.chdir(tmp_path)
    (tmp_path / "note.txt").write_bytes(b"some text")
    disk = str(large_disk)

    assert main([disk, "create", "note.txt", "2"]) == 0
    assert main([disk, "write", "note.txt"]) == 0
    (tmp_path / "note.txt").unlink()
    assert main([disk, "read", "note.txt"]) == 0
    assert (tmp_path / "note.txt").read_bytes() == b"some text"

    capsys.readouterr()
    main([disk, "list"])
    assert "note.txt" in capsys.readouterr().out

    main([disk, "delete", "note.txt"])
    with BMFSDisk(large_disk) as opened:
        assert opened.find("note.txt") is None


def test_main_reports_errors(large_disk, capsys):
    disk = str(large_disk)
    main([disk, "create", "x", "0"])
    assert "Invalid file size" in capsys.readouterr().out
    main([disk, "bogus"])
    assert "Unknown command" in capsys.readouterr().out
    main([disk, "read", "missing"])
    assert "File not found in BMFS." in capsys.readouterr().out


def test_main_format_requires_force(large_disk, capsys):
    disk = str(large_disk)
    main([disk, "create", "a", "2"])
    capsys.readouterr()
    main([disk, "format"])
    assert "Format aborted!" in capsys.readouterr().out
    with BMFSDisk(large_disk) as opened:
        assert [e.name for e in opened.entries()] == ["a"]
    main([disk, "format", "/force"])
    assert "Format complete." in capsys.readouterr().out
    with BMFSDisk(large_disk) as opened:
        assert opened.entries() == []


def test_main_unformatted_disk(tmp_path, capsys):
    path = tmp_path / "blank.img"
    with open(path, "wb") as handle:
        handle.truncate(MINIMUM_DISK_SIZE)
    main([str(path), "list"])
    assert "Not a valid BMFS drive" in capsys.readouterr().out
    main([str(path), "format"])
    with BMFSDisk(path) as opened:
        assert opened.is_formatted()