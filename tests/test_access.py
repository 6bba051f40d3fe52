import errno
import os
import stat

import pytest

from esshell.access import (
    EXEC,
    READ,
    WRITE,
    access,
    check_executable,
    check_file,
    path_cat,
)
from esshell.errors import EsError
from esshell.terms import Term


@pytest.fixture
def plain_file(tmp_path):
    path = tmp_path / "plain"
    path.write_text("data")
    path.chmod(0o644)
    return str(path)


def test_path_cat_joins_with_slash():
    assert path_cat("/usr/bin", "ls") == "/usr/bin/ls"


def test_path_cat_no_double_slash():
    assert path_cat("/usr/bin/", "ls") == "/usr/bin/ls"


def test_path_cat_empty_pieces():
    assert path_cat("", "ls") == "ls"
    assert path_cat("/bin", "") == "/bin"


def test_check_file_regular_readable(plain_file):
    assert check_file(plain_file, READ, stat.S_IFREG) is None


def test_check_file_wrong_kind(tmp_path):
    with pytest.raises(PermissionError) as info:
        check_file(str(tmp_path), 0, stat.S_IFREG)
    assert info.value.errno == errno.EACCES


def test_check_file_missing(tmp_path):
    with pytest.raises(FileNotFoundError) as info:
        check_file(str(tmp_path / "absent"))
    assert info.value.errno == errno.ENOENT


def test_check_file_no_exec_bits(plain_file):
    with pytest.raises(PermissionError):
        check_file(plain_file, EXEC)


def test_check_file_no_write_bits(plain_file):
    os.chmod(plain_file, 0o444)
    with pytest.raises(PermissionError):
        check_file(plain_file, WRITE)


def test_check_file_symlink_kind(tmp_path, plain_file):
    link = tmp_path / "link"
    link.symlink_to(plain_file)
    assert check_file(str(link), 0, stat.S_IFLNK) is None
    with pytest.raises(PermissionError):
        check_file(plain_file, 0, stat.S_IFLNK)


def test_check_executable(plain_file):
    assert check_executable(plain_file) == os.strerror(errno.EACCES)
    os.chmod(plain_file, 0o755)
    assert check_executable(plain_file) is None


def test_check_executable_directory(tmp_path):
    assert check_executable(str(tmp_path)) == os.strerror(errno.EACCES)


def test_access_reports_each_path(plain_file, tmp_path):
    missing = str(tmp_path / "absent")
    result = access(["-f", plain_file, missing, str(tmp_path)])
    assert result == [
        Term("0"),
        Term(os.strerror(errno.ENOENT)),
        Term(os.strerror(errno.EACCES)),
    ]


def test_access_combined_options(plain_file):
    assert access(["-rf", plain_file]) == [Term("0")]


def test_access_first_with_name(tmp_path):
    empty = tmp_path / "empty"
    full = tmp_path / "full"
    empty.mkdir()
    full.mkdir()
    (full / "prog").write_text("x")
    result = access(["-1", "-n", "prog", str(empty), str(full)])
    assert result == [Term(str(full / "prog"))]


def test_access_first_none_found(tmp_path):
    assert access(["-1", "-n", "prog", str(tmp_path)]) == []


def test_access_first_exception_with_name(tmp_path):
    with pytest.raises(EsError) as info:
        access(["-1e", "-n", "prog", str(tmp_path)])
    assert info.value.source == "$&access"
    assert info.value.message == "prog: " + os.strerror(errno.ENOENT)


def test_access_first_exception_keeps_other_error(plain_file):
    with pytest.raises(EsError) as info:
        access(["-1", "-e", "-x", plain_file])
    assert info.value.message == os.strerror(errno.EACCES)


def test_access_unknown_option(plain_file):
    with pytest.raises(EsError) as info:
        access(["-z", plain_file])
    assert info.value.source == "$&access"


def test_access_double_dash_ends_options(tmp_path):
    result = access(["--", "-f"])
    assert result == [Term(os.strerror(errno.ENOENT))]