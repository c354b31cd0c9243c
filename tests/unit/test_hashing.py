from pathlib import Path

import pytest

from reslocal.core.hashing import compute_file_digest


def test_compute_file_digest_md5_base64(tmp_path: Path) -> None:
    path = tmp_path / "temp.dat"
    path.write_bytes(b"abc")
    assert compute_file_digest(path) == "kAFQmDzST7DWlj99KOF/cg=="


@pytest.mark.parametrize("chunk_size", [1, 2, 1024])
def test_file_digest_does_not_depend_on_chunk_size(tmp_path: Path, chunk_size: int) -> None:
    path = tmp_path / "temp.dat"
    path.write_bytes(b"abc" * 100)
    assert compute_file_digest(path, chunk_size=chunk_size) == compute_file_digest(path)


def test_empty_file_digest(tmp_path: Path) -> None:
    path = tmp_path / "empty.dat"
    path.write_bytes(b"")
    assert compute_file_digest(path) == "1B2M2Y8AsgTpgAmY7PhCfg=="
