"""Resources bundled with the Matrix text client."""

import importlib.resources
import pathlib
import shutil
from contextlib import contextmanager

from ..constants import SAMPLE_CONFIG_FILENAME


@contextmanager
def open_sample_config():
    """Yield a real filesystem Path to the bundled sample config while the context is open."""
    res = importlib.resources.files(__package__) / SAMPLE_CONFIG_FILENAME
    with importlib.resources.as_file(res) as p:
        yield pathlib.Path(p)


def copy_sample_config_to(dst_path: str) -> str:
    """
    Copy the bundled sample config to dst_path and return the written file's path.

    A dst_path that is an existing directory, or has no suffix, is treated as a
    directory and the sample's file name is appended.
    """
    dst = pathlib.Path(dst_path)
    if (dst.exists() and dst.is_dir()) or dst.suffix == "":
        dst = dst / SAMPLE_CONFIG_FILENAME
    with open_sample_config() as src:
        dst.parent.mkdir(parents=True, exist_ok=True)
        shutil.copy2(src, dst)
    return str(dst)
