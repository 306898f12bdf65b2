"""Tests for remote file browsing."""

from unittest.mock import MagicMock

import pytest

from mssql_tool.core.files import (
    DefaultPaths,
    PathCheck,
    RemoteFile,
    build_tree,
    check_path,
    directory_of,
    file_rows,
    get_default_paths,
    list_files,
    separator_for,
)
from mssql_tool.core.models import QueryResult

DIRTREE = [
    ("FULL", 1, 0),
    ("Sales.bak", 2, 1),
    ("Sales.BAK.tmp", 2, 1),
    ("LOG", 1, 0),
    ("2024", 2, 0),
    ("Sales_1.trn", 3, 1),
    ("readme.txt", 1, 1),
]


@pytest.fixture
def client():
    c = MagicMock()
    c.execute_query.return_value = QueryResult.from_rows(
        ["subdirectory", "depth", "file"], DIRTREE
    )
    return c


@pytest.mark.unit
@pytest.mark.parametrize(
    ("path", "sep"),
    [("C:\\Data", "\\"), ("/var/opt/mssql", "/"), ("\\\\share\\x", "\\"), ("a/b", "/")],
)
def test_separator_for(path, sep):
    assert separator_for(path) == sep


@pytest.mark.unit
def test_directory_of():
    assert directory_of("C:\\Data\\master.mdf") == "C:\\Data"
    assert directory_of("/var/opt/mssql/data/master.mdf") == "/var/opt/mssql/data"


@pytest.mark.unit
def test_build_tree_rebuilds_paths():
    files = build_tree("B:\\Backup\\", DIRTREE)
    assert [f.path for f in files] == [
        "B:\\Backup\\FULL",
        "B:\\Backup\\FULL\\Sales.bak",
        "B:\\Backup\\FULL\\Sales.BAK.tmp",
        "B:\\Backup\\LOG",
        "B:\\Backup\\LOG\\2024",
        "B:\\Backup\\LOG\\2024\\Sales_1.trn",
        "B:\\Backup\\readme.txt",
    ]
    assert files[0].is_directory is True
    assert files[1].is_directory is False
    assert files[5].depth == 3


@pytest.mark.unit
def test_build_tree_from_drive_root():
    files = build_tree("C:\\", [("x.bak", 1, 1)])
    assert files[0].path == "C:\\x.bak"


@pytest.mark.unit
def test_build_tree_posix_root():
    files = build_tree("/", [("tmp", 1, 0), ("a.bak", 2, 1)])
    assert [f.path for f in files] == ["/tmp", "/tmp/a.bak"]


@pytest.mark.unit
def test_list_files_excludes_directories_by_default(client):
    files = list_files(client, "B:\\Backup")
    assert all(not f.is_directory for f in files)
    assert len(files) == 4
    client.execute_query.assert_called_once_with(
        "EXEC master.sys.xp_dirtree ?, ?, 1", ("B:\\Backup", 1)
    )


@pytest.mark.unit
def test_list_files_with_directories(client):
    files = list_files(client, "B:\\Backup", depth=0, include_directories=True)
    assert len(files) == len(DIRTREE)
    assert client.execute_query.call_args[0][1] == ("B:\\Backup", 0)


@pytest.mark.unit
def test_list_files_extension_filter(client):
    files = list_files(client, "B:\\Backup", extensions=[".BAK", "trn"])
    assert [f.name for f in files] == ["Sales.bak", "Sales_1.trn"]


@pytest.mark.unit
def test_extension_filter_drops_directories(client):
    files = list_files(client, "B:\\Backup", extensions=["bak"], include_directories=True)
    assert [f.name for f in files] == ["Sales.bak"]


@pytest.mark.unit
def test_check_path_existing_file():
    client = MagicMock()
    client.execute_query.return_value = QueryResult.from_rows(["e", "d", "p"], [(1, 0, 1)])
    assert check_path(client, "C:\\x.bak") == PathCheck("C:\\x.bak", True, False, True)


@pytest.mark.unit
def test_check_path_directory():
    client = MagicMock()
    client.execute_query.return_value = QueryResult.from_rows(["e", "d", "p"], [(0, 1, 1)])
    result = check_path(client, "C:\\Backup")
    assert result.exists is True
    assert result.is_directory is True


@pytest.mark.unit
def test_check_path_missing():
    client = MagicMock()
    client.execute_query.return_value = QueryResult.from_rows(["e", "d", "p"], [(0, 0, 0)])
    assert check_path(client, "Q:\\nope").exists is False


@pytest.mark.unit
def test_default_paths():
    client = MagicMock()
    client.execute_query.return_value = QueryResult.from_rows(
        ["d", "l", "b", "md", "ml"],
        [("E:\\Data\\", "F:\\Log\\", "G:\\Backup", "C:\\m\\master.mdf", "C:\\m\\mastlog.ldf")],
    )
    assert get_default_paths(client) == DefaultPaths("E:\\Data", "F:\\Log", "G:\\Backup")


@pytest.mark.unit
def test_default_paths_fall_back_to_master_files():
    client = MagicMock()
    client.execute_query.return_value = QueryResult.from_rows(
        ["d", "l", "b", "md", "ml"],
        [(None, None, None, "C:\\m\\master.mdf", "C:\\l\\mastlog.ldf")],
    )
    assert get_default_paths(client) == DefaultPaths("C:\\m", "C:\\l", "")


@pytest.mark.unit
def test_file_rows():
    rows = file_rows("sql1", [RemoteFile("C:\\x.bak", "x.bak", 1, False)])
    assert rows == [("sql1", "C:\\x.bak", "x.bak", 1, False)]
