"""Validate the deployment template.

Checks references locally, then asks ``pulumi preview`` to compile the
program against the provider schemas. Success iff the linter exits 0.
"""

import argparse
import sys
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional, Sequence

from loguru import logger

from azcli import run_command
from config import TEMPLATE_ENV, lint_config, load_config, parse_config


@dataclass
class ValidationReport:
    returncode: int
    output: str = ""
    problems: List[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return self.returncode == 0 and not self.problems


def default_linter(stack: Optional[str] = None) -> List[str]:
    args = ["pulumi", "preview", "--non-interactive", "--diff"]
    if stack:
        args += ["--stack", stack]
    return args


def validate_template(
    path: str = "config.yaml",
    stack: Optional[str] = None,
    linter: Optional[Sequence[str]] = None,
) -> ValidationReport:
    try:
        config = parse_config(load_config(path))
    except (OSError, ValueError) as e:
        return ValidationReport(1, problems=[str(e)])

    problems = lint_config(config)
    if problems:
        return ValidationReport(1, problems=problems)

    logger.info("Linting {} ({} resources)", path, len(config.azure_resources))
    # The Pulumi program reads the template named here, not its configured default
    result = run_command(
        linter or default_linter(stack),
        check=False,
        env={TEMPLATE_ENV: str(Path(path).resolve())},
    )
    return ValidationReport(result.returncode, output=result.output)


def main(argv: Optional[List[str]] = None) -> None:
    parser = argparse.ArgumentParser(description="Validate the deployment template.")
    parser.add_argument("template", nargs="?", default="config.yaml", help="Template path.")
    parser.add_argument("--stack", type=str, default=None, help="Pulumi stack to preview against.")
    args = parser.parse_args(argv)

    report = validate_template(args.template, stack=args.stack)
    if report.ok:
        print("Template validation succeeded")
        return

    print("Template validation failed")
    for problem in report.problems:
        print(f"  - {problem}")
    if report.output:
        print(report.output)
    sys.exit(report.returncode)


if __name__ == "__main__":
    main()
