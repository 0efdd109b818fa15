"""SHA-256 digests for comparing build output"""

import hashlib
from pathlib import Path


def tree_digest(root: Path) -> str:
    """Digest of every file under root: relative paths and bytes, in sorted order.

    Two output trees with equal digests are byte-identical.
    """
    h = hashlib.sha256()
    if not root.exists():
        return h.hexdigest()
    for p in sorted(q for q in root.rglob('*') if q.is_file()):
        h.update(p.relative_to(root).as_posix().encode("utf-8"))
        h.update(b"\0")
        h.update(p.read_bytes())
        h.update(b"\0")
    return h.hexdigest()
