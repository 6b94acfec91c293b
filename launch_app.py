from __future__ import annotations

import argparse
import hashlib
import os
import subprocess
import sys
import venv
from pathlib import Path
from typing import List, Optional


PROJECT_ROOT = Path(__file__).resolve().parent
VENV_DIR = PROJECT_ROOT / ".venv"
PROJECT_FILE = PROJECT_ROOT / "pyproject.toml"
INSTALL_MARKER = VENV_DIR / ".project.installed"
ENTRYPOINTS = {
    "client": PROJECT_ROOT / "app" / "main.py",
    "server": PROJECT_ROOT / "app" / "api.py",
}


def venv_python() -> Path:
    if os.name == "nt":
        return VENV_DIR / "Scripts" / "python.exe"
    return VENV_DIR / "bin" / "python"


def ensure_virtualenv() -> None:
    if venv_python().exists():
        return
    print(f"[launcher] Creating virtual environment at {VENV_DIR}...")
    venv.EnvBuilder(with_pip=True).create(VENV_DIR)


def project_signature() -> str:
    """Hash of pyproject.toml; a change triggers a reinstall."""
    if not PROJECT_FILE.exists():
        raise FileNotFoundError(f"Project file not found: {PROJECT_FILE}")
    return hashlib.sha256(PROJECT_FILE.read_bytes()).hexdigest()


def _pip(*args: str) -> None:
    subprocess.check_call([str(venv_python()), "-m", "pip", *args])


def ensure_installed(with_tests: bool = False) -> None:
    signature = project_signature() + (":test" if with_tests else "")
    if INSTALL_MARKER.exists() and INSTALL_MARKER.read_text().strip() == signature:
        print("[launcher] Project already installed.")
        return

    print("[launcher] Upgrading pip...")
    _pip("install", "--upgrade", "pip")
    target = f"{PROJECT_ROOT}[test]" if with_tests else str(PROJECT_ROOT)
    print(f"[launcher] Installing {target} in editable mode...")
    _pip("install", "-e", target)
    INSTALL_MARKER.write_text(signature)


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Set up the virtualenv and start the demand board.")
    parser.add_argument(
        "target",
        nargs="?",
        choices=sorted(ENTRYPOINTS),
        default="client",
        help="client (desktop app, default) or server (development backend on port 8080)",
    )
    parser.add_argument("--with-tests", action="store_true", help="also install the test extra")
    return parser.parse_args(argv)


def launch_app(argv: Optional[List[str]] = None) -> int:
    args = parse_args(argv)
    ensure_virtualenv()
    ensure_installed(with_tests=args.with_tests)

    entrypoint = ENTRYPOINTS[args.target]
    if not entrypoint.exists():
        raise FileNotFoundError(f"Entrypoint not found: {entrypoint}")
    print(f"[launcher] Starting the {args.target}...")
    return subprocess.call([str(venv_python()), str(entrypoint)])


if __name__ == "__main__":
    try:
        exit_code = launch_app()
    except subprocess.CalledProcessError as exc:
        print(f"[launcher] Command failed with exit code {exc.returncode}", file=sys.stderr)
        sys.exit(exc.returncode)
    except Exception as exc:
        print(f"[launcher] {exc}", file=sys.stderr)
        sys.exit(1)
    else:
        sys.exit(exit_code)
