"""
image-upgrades CLI

Commands:
- lookup: Show the upgrades available for an image reference
- digest: Resolve the digest of an image reference's tag
"""
from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

import typer

from .cli_context import CLIContext
from .models import UpdatePolicy, parse_image_reference
from .operations import Operations, OpsConfig, run_and_exit
from .operations.printers import print_digest, print_upgrades, print_upgrades_json

app = typer.Typer(name="image-upgrades", help="Find newer tags and digests for container images")


@app.callback()
def main(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging"),
) -> None:
    """Find newer tags and digests for container images."""
    if verbose:
        logging.basicConfig(level=logging.DEBUG, format="%(levelname)s %(name)s: %(message)s")


def _build_policy(policy_file: Optional[Path], **overrides) -> UpdatePolicy:
    """
    Build the update policy from an optional YAML file plus CLI overrides.

    Options left unset on the command line (None) keep the file's value.
    """
    base = UpdatePolicy.from_yaml_file(policy_file) if policy_file else UpdatePolicy()
    updates = {key: value for key, value in overrides.items() if value is not None}
    return UpdatePolicy.model_validate({**base.model_dump(), **updates})


@app.command()
def lookup(
    image_ref: str = typer.Argument(..., help="Image reference, e.g. node:18.1.0-alpine or ghcr.io/org/app@sha256:..."),
    policy_file: Optional[Path] = typer.Option(None, "--policy", help="YAML policy file"),
    pin_digests: Optional[bool] = typer.Option(None, "--pin-digests/--no-pin-digests", help="Pin new tags to digests"),
    ignore_unstable: Optional[bool] = typer.Option(None, "--ignore-unstable/--include-unstable",
                                                   help="Skip unstable versions"),
    unstable_pattern: Optional[str] = typer.Option(None, "--unstable-pattern", help="Regex matching unstable versions"),
    separate_major_minor: Optional[bool] = typer.Option(None, "--separate-major-minor/--no-separate-major-minor",
                                                        help="Propose major upgrades separately"),
    separate_multiple_major: Optional[bool] = typer.Option(None, "--separate-multiple-major/--collapse-majors",
                                                           help="Propose one upgrade per major version"),
    automerge_major: Optional[bool] = typer.Option(None, "--automerge-major/--no-automerge-major",
                                                   help="Major upgrades are automerged"),
    group_name: Optional[str] = typer.Option(None, "--group", help="Group upgrades under this name"),
    versioning: Optional[str] = typer.Option(None, "--versioning", help="Version scheme: docker, semver, pep440"),
    as_json: bool = typer.Option(False, "--json", help="Print upgrades as JSON"),
    details: bool = typer.Option(False, "--details", help="Show digests and full references"),
) -> None:
    """Show the upgrades available for an image reference."""

    def _lookup() -> None:
        reference = parse_image_reference(image_ref)
        policy = _build_policy(
            policy_file,
            pin_digests=pin_digests,
            ignore_unstable=ignore_unstable,
            unstable_pattern=unstable_pattern,
            separate_major_minor=separate_major_minor,
            separate_multiple_major=separate_multiple_major,
            automerge_major=automerge_major,
            group_name=group_name,
            versioning=versioning,
        )
        config = OpsConfig(as_json=as_json, verbose=details)

        context = CLIContext.from_env()
        try:
            ops = Operations(config=config, registry=context.registry, settings=context.settings)
            result = ops.lookup(reference, policy)
        finally:
            context.close()

        if config.as_json:
            print_upgrades_json(result.upgrades)
        else:
            print_upgrades(reference, result.upgrades, verbose=config.verbose)

    run_and_exit(_lookup)


@app.command()
def digest(
    image_ref: str = typer.Argument(..., help="Image reference; the tag defaults to latest"),
    as_json: bool = typer.Option(False, "--json", help="Print result as JSON"),
) -> None:
    """Resolve the digest of an image reference's tag."""

    def _digest() -> Optional[str]:
        reference = parse_image_reference(image_ref)
        context = CLIContext.from_env()
        try:
            ops = Operations(config=OpsConfig(as_json=as_json), registry=context.registry,
                             settings=context.settings)
            result = ops.digest(reference)
        finally:
            context.close()

        print_digest(reference, result, as_json=as_json)
        return result

    if run_and_exit(_digest) is None:
        raise typer.Exit(code=4)


if __name__ == "__main__":
    app()
