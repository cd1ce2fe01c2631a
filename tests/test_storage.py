import pytest

from secretlink.errors import PathOutsideDiskError, UnknownDiskError


class TestDiskStorage:

    def test_exists_read_delete(self, storage):
        storage.put("media", "a/b.txt", b"hello")

        assert storage.exists("media", "a/b.txt")
        with storage.read_stream("media", "a/b.txt") as stream:
            assert stream.read() == b"hello"
        assert storage.delete("media", "a/b.txt") is True
        assert not storage.exists("media", "a/b.txt")
        assert storage.delete("media", "a/b.txt") is False

    def test_directories_are_not_files(self, storage):
        storage.put("media", "dir/file.txt", b"x")
        assert not storage.exists("media", "dir")

    def test_mime_type(self, storage):
        assert storage.mime_type("media", "report.pdf") == "application/pdf"
        assert storage.mime_type("media", "noextension") is None

    def test_unknown_disk(self, storage):
        with pytest.raises(UnknownDiskError):
            storage.exists("nope", "a.txt")

    @pytest.mark.parametrize("path", ["../escape.txt", "a/../../escape.txt"])
    def test_path_outside_disk(self, storage, path):
        with pytest.raises(PathOutsideDiskError):
            storage.exists("media", path)

    def test_symlink_outside_disk(self, storage, tmp_path):
        (tmp_path / "outside.txt").write_bytes(b"secret")
        storage.put("media", "placeholder", b"")
        (tmp_path / "media" / "link.txt").symlink_to(tmp_path / "outside.txt")

        with pytest.raises(PathOutsideDiskError):
            storage.read_stream("media", "link.txt")

    def test_default_disk(self, storage):
        assert storage.default_disk == "local"
