# utils.py
from typing import Tuple


def parse_version(version_str: str) -> Tuple[int, int, int, int]:
    """
    Parse a semantic version string into a tuple for comparison.

    A leading "v" is ignored, missing components count as 0 and build
    metadata after "+" is dropped. The last element is 0 for pre-releases
    and 1 otherwise, so "1.2.0-beta" sorts below "1.2.0". Two pre-release
    tags on the same major.minor.patch compare equal.

    Args:
        version_str: Version string (e.g., "v1.2.3" or "1.2.3-rc1")

    Returns:
        Tuple of (major, minor, patch, release_flag)

    Example:
        >>> parse_version("v1.2.3")
        (1, 2, 3, 1)
    """
    version_str = version_str.strip().lstrip("vV").split("+", 1)[0]
    core, _, prerelease = version_str.partition("-")

    components = []
    for part in core.split(".")[:3]:
        # Extract digits from the beginning of each part
        digits = ""
        for char in part:
            if char.isdigit():
                digits += char
            else:
                break

        components.append(int(digits) if digits else 0)

    while len(components) < 3:
        components.append(0)

    major, minor, patch = components
    return (major, minor, patch, 0 if prerelease else 1)


def compare_versions(installed: str, release: str) -> int:
    """Order an installed Winget-AutoUpdate version against a release tag as -1, 0 or 1.

    A pre-release sorts below the final release of the same number.
    """
    installed_key = parse_version(installed)
    release_key = parse_version(release)
    return (installed_key > release_key) - (installed_key < release_key)
