from __future__ import annotations

import hashlib
from pathlib import Path
from typing import Optional, Union

from assetsync.core.runtime.settings import Settings

VERIFY_OK = "ok"
VERIFY_MISSING = "missing"
VERIFY_CORRUPT = "corrupt"


def file_digest(path: Union[str, Path], algorithm: str = "sha1") -> str:
    h = hashlib.new(algorithm)
    with open(path, "rb") as f:
        for chunk in iter(lambda: f.read(64 * 1024), b""):
            h.update(chunk)
    return h.hexdigest()


class FileVerifier:
    """Size verifier with an optional digest check.

    verify() never raises for a bad file; it reports ok / missing / corrupt and
    leaves the decision (fetch again, fail the entry) to the caller.
    """

    def __init__(self, *, check_hash: bool = False, algorithm: str = "sha1"):
        self.check_hash = check_hash
        self.algorithm = algorithm

    @classmethod
    def from_settings(cls, settings: Settings) -> "FileVerifier":
        return cls(check_hash=settings.verify_hash, algorithm=settings.hash_algorithm)

    def verify(self, path: Union[str, Path], expected_size: int, expected_hash: Optional[str] = None) -> str:
        p = Path(path)
        if not p.is_file():
            return VERIFY_MISSING
        if p.stat().st_size != int(expected_size):
            return VERIFY_CORRUPT
        if self.check_hash and expected_hash:
            if file_digest(p, self.algorithm) != expected_hash.lower():
                return VERIFY_CORRUPT
        return VERIFY_OK
