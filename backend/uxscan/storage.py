"""
Optional frame persistence.

Writes each frame to <root>/scan-<epoch ms>/viewport-<index>.jpg. The pipeline
only calls this when AUDIT_DIR is configured; by default scans never touch the
file system.
"""

import os
import time

from uxscan.models import Frame


class LocalFrameSink:
    def __init__(self, root: str):
        self.root = root

    def save(self, frames: list[Frame]) -> str:
        """Write frames to a fresh session folder. Returns the folder name."""
        session_name = f"scan-{int(time.time() * 1000)}"
        session_path = os.path.join(self.root, session_name)
        os.makedirs(session_path, exist_ok=True)

        for frame in frames:
            dest = os.path.join(session_path, f"viewport-{frame.index}.jpg")
            with open(dest, "wb") as f:
                f.write(frame.image_bytes)

        print(f"  [storage] Saved {len(frames)} frame(s) to {session_path}")
        return session_name


def get_frame_sink(audit_dir: str) -> LocalFrameSink | None:
    if not audit_dir:
        return None
    return LocalFrameSink(audit_dir)
