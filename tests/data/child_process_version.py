import os
import subprocess
import sys

PROBE = "import sys; print('.'.join(map(str, sys.version_info[:3])))"


def main():
    command = "python" if os.name == "nt" else "python3"
    child_version = subprocess.check_output([command, "-c", PROBE], universal_newlines=True).strip()
    worker_version = ".".join(map(str, sys.version_info[:3]))
    return {"worker_version": worker_version, "child_version": child_version}
