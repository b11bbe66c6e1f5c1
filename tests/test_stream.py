"""Tests for manifest stream acquisition from images and directories."""

import logging

import pytest

from xpkgmarshal.codes import MarshalCode, MarshalError
from xpkgmarshal._internal.io.fs import MemoryFileSystem, OsFileSystem
from xpkgmarshal._internal.io.image import LayerImage
from xpkgmarshal._internal.io.stream import (
    image_digest,
    open_directory_stream,
    open_image_stream,
    split_versioned_path,
)
from builders import tar_layer


def test_split_versioned_path():
    assert split_versioned_path("foo@v1.2.3") == ("foo", "v1.2.3")


@pytest.mark.parametrize("path", ["foo", "foo@v1@v2", "", "a/b/c"])
def test_split_versioned_path_rejects_other_shapes(path):
    with pytest.raises(MarshalError) as excinfo:
        split_versioned_path(path)
    assert excinfo.value.code == MarshalCode.INVALID_INPUT_PATH


def test_directory_stream_captures_digest_and_excludes_marker():
    fs = MemoryFileSystem({
        "pkg@v1/package.yaml": b"kind: A",
        "pkg@v1/crds/b.yaml": b"kind: B",
        "pkg@v1/sha256:abc123": b"kind: ShouldNotAppear",
    })

    acquired = open_directory_stream(fs, "pkg@v1")

    assert acquired.digest == "sha256:abc123"
    assert acquired.files == ["pkg@v1/crds/b.yaml", "pkg@v1/package.yaml"]
    content = acquired.stream.read()
    assert content == b"kind: B\n---\nkind: A"
    assert b"ShouldNotAppear" not in content


def test_directory_stream_without_marker_has_empty_digest():
    fs = MemoryFileSystem({"pkg@v1/package.yaml": b"kind: A"})

    acquired = open_directory_stream(fs, "pkg@v1")

    assert acquired.digest == ""
    assert acquired.stream.read() == b"kind: A"


def test_directory_stream_multiple_markers_last_wins(caplog):
    fs = MemoryFileSystem({
        "pkg@v1/package.yaml": b"kind: A",
        "pkg@v1/sha256:aaa": b"",
        "pkg@v1/sha256:bbb": b"",
    })

    with caplog.at_level(logging.WARNING, logger="xpkgmarshal._internal.io.stream"):
        acquired = open_directory_stream(fs, "pkg@v1")

    assert acquired.digest == "sha256:bbb"
    assert "Found 2 digest marker files" in caplog.text


def test_directory_stream_custom_prefix():
    fs = MemoryFileSystem({"pkg@v1/package.yaml": b"kind: A", "pkg@v1/sha512:ff": b""})

    acquired = open_directory_stream(fs, "pkg@v1", digest_prefix="sha512:")

    assert acquired.digest == "sha512:ff"


def test_directory_stream_missing_directory():
    with pytest.raises(MarshalError) as excinfo:
        open_directory_stream(MemoryFileSystem({"other/a": b""}), "pkg@v1")
    assert excinfo.value.code == MarshalCode.NOT_FOUND


def test_directory_stream_from_disk(provider_dir):
    acquired = open_directory_stream(OsFileSystem(), provider_dir.as_posix())

    assert acquired.digest.startswith("sha256:5b0e2c4d")
    assert [f.rsplit("/", 1)[-1] for f in acquired.files] == [
        "nop.crossplane.io_nopresources.yaml",
        "package.yaml",
    ]


def test_open_image_stream():
    image = LayerImage([tar_layer({"package.yaml": b"kind: A", "other.txt": b"x"})])

    with open_image_stream(image) as stream:
        assert stream.read() == b"kind: A"


def test_open_image_stream_missing_file():
    image = LayerImage([tar_layer({"other.txt": b"x"})])

    with pytest.raises(MarshalError) as excinfo:
        open_image_stream(image)
    assert excinfo.value.code == MarshalCode.NOT_FOUND
    assert "package.yaml" in excinfo.value.message


def test_open_image_stream_corrupt_layer():
    with pytest.raises(MarshalError) as excinfo:
        open_image_stream(LayerImage([b"not a tarball"]))
    assert excinfo.value.code == MarshalCode.NOT_FOUND


class _BrokenImage:
    def digest(self):
        raise RuntimeError("registry unreachable")

    def layers(self):
        return []


def test_image_digest_failure_is_wrapped():
    with pytest.raises(MarshalError) as excinfo:
        image_digest(_BrokenImage())
    assert excinfo.value.code == MarshalCode.DIGEST_UNAVAILABLE
    assert isinstance(excinfo.value.__cause__, RuntimeError)
