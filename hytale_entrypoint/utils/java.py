"""
Java detection utility.
"""

import shutil
import subprocess


def check_java(java_bin: str = "java") -> tuple[bool, str]:
    """
    Check that *java_bin* resolves to a runnable Java.
    Returns ``(found, version_string_or_error)``.
    """
    resolved = shutil.which(java_bin)
    if not resolved:
        return False, f"Java not found: {java_bin}. Install Java 25+ from https://adoptium.net"
    try:
        result = subprocess.run(
            [resolved, "-version"],
            stdout=subprocess.PIPE,
            stderr=subprocess.STDOUT,
            text=True,
            timeout=10,
        )
    except subprocess.TimeoutExpired:
        return False, "Java check timed out."
    except OSError as exc:
        return False, f"Error checking Java: {exc}"
    output = result.stdout.strip() or "(no output)"
    if result.returncode == 0:
        return True, output.splitlines()[0]
    return False, output
