import os

__version__ = "1.0.0"


def data_dir() -> str:
    """Return the uniqlog data directory (for config and debug log).

    Uses %APPDATA%/uniqlog on Windows, ~/.uniqlog on Unix.
    """
    if os.name == "nt":
        appdata = os.environ.get(
            "APPDATA", os.path.join(os.path.expanduser("~"), "AppData", "Roaming")
        )
        return os.path.join(appdata, "uniqlog")
    return os.path.join(os.path.expanduser("~"), ".uniqlog")
