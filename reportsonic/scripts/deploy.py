"""
scripts/deploy.py

Applies pending migrations, then hands over to the hosting CLI
configured in DEPLOY_COMMAND. Output of both steps is streamed as it is
produced; the first failing step stops the run.

Usage:
    python -m reportsonic.scripts.deploy [--skip-migrations] [--command "..."]
"""

import argparse
import shlex
import subprocess
import sys

from reportsonic.core.config import BASE_DIR, settings

MIGRATE_COMMAND = ["alembic", "upgrade", "head"]


def run_step(label: str, command: list[str]) -> int:
    """Runs one command from the project root, streaming its output line by line."""
    print(f"🚀 {label}: {' '.join(command)}")
    try:
        process = subprocess.Popen(
            command,
            cwd=BASE_DIR,
            stdout=subprocess.PIPE,
            stderr=subprocess.STDOUT,
            text=True,
        )
    except FileNotFoundError:
        print(f"❌ {label} failed: '{command[0]}' is not installed or not on PATH")
        return 127

    assert process.stdout is not None
    for line in process.stdout:
        print(f"   {line.rstrip()}")
    returncode = process.wait()

    if returncode != 0:
        print(f"❌ {label} failed with exit code {returncode}")
    else:
        print(f"✅ {label} complete")
    return returncode


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Migrate the database and deploy ReportSonic.")
    parser.add_argument("--skip-migrations", action="store_true")
    parser.add_argument("--command", default=settings.DEPLOY_COMMAND, help="Hosting CLI command")
    args = parser.parse_args(argv)

    steps: list[tuple[str, list[str]]] = []
    if not args.skip_migrations:
        steps.append(("Database migrations", MIGRATE_COMMAND))
    steps.append(("Deploy", shlex.split(args.command)))

    for label, command in steps:
        returncode = run_step(label, command)
        if returncode != 0:
            return returncode

    print("🌐 Deployment finished. Check that the production environment variables are set.")
    return 0


if __name__ == "__main__":
    sys.exit(main())
