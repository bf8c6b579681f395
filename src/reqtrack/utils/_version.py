from importlib.metadata import PackageNotFoundError, version


def package_version() -> str:
    """Return the installed reqtrack version, or ``0.0.0`` from a source tree."""
    try:
        return version("reqtrack")
    except PackageNotFoundError:
        return "0.0.0"
