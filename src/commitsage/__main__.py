"""
Allow running the CLI with ``python -m commitsage``.
"""

from commitsage.cli import main


if __name__ == "__main__":
    main(prog_name="commitsage")
