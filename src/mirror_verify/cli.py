import json
import logging
from pathlib import Path

import click

from mirror_core.protocol import DEFAULT_KEYRING
from .const import VerifyError
from .crypto import open_keyring
from .logic import VerifyConfig, default_workers, fatal_report, verify_mirror
from .prune import PruneMode

CANONICAL_JSON_KW = {"sort_keys": True, "separators": (",", ":"), "ensure_ascii": False}

logger = logging.getLogger("mirror_verify")


def _setup_logging(debug: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if debug else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


@click.group(context_settings={"auto_envvar_prefix": "MIRROR_CHECK"})
@click.version_option(package_name="mirror-check")
def main():
    pass


@main.command("mirror")
@click.option("--path", default=".", show_default=True,
              type=click.Path(file_okay=False, path_type=Path), help="Path to the mirror base")
@click.option("--repo", default="", help='Repo to check (example "/7/os/x86_64")')
@click.option("--repodata", type=click.Path(file_okay=False, path_type=Path),
              help="Explicit path to the repodata/ directory to check")
@click.option("--output", default="-", show_default=True,
              help="Output file for the failed results of the check")
@click.option("--keyring", default=DEFAULT_KEYRING, show_default=True, type=click.Path(path_type=Path),
              help="Keyring used for verifying, a key file or a keys/ directory")
@click.option("--insecure", is_flag=True, help="Skip signature checks")
@click.option("--multi", is_flag=True,
              help="Also scan for additional package lists in repodata. These are not covered "
                   "by the GPG signature and may not be a complete set!")
@click.option("--prune", is_flag=True, help="Find and remove unused packages (.rpm)")
@click.option("--prune-test", is_flag=True, help="Find and display unused packages (.rpm)")
@click.option("--workers", type=click.IntRange(min=1), default=default_workers, show_default="cpu count, max 8",
              help="Files hashed in parallel")
@click.option("--json", "as_json", is_flag=True, help="Print a JSON summary to stderr")
@click.option("--debug", is_flag=True, help="Turn on debug, more verbose")
def mirror_cmd(path, repo, repodata, output, keyring, insecure, multi, prune, prune_test,
               workers, as_json, debug):
    """Verify a mirrored repository against its signed metadata."""
    _setup_logging(debug)
    mode = PruneMode.REPORT if prune_test else PruneMode.DELETE if prune else None
    config = VerifyConfig(
        base=path, repo=repo, repodata=repodata, keyring=keyring, insecure=insecure,
        multi=multi, prune=mode, workers=workers,
    )

    with click.open_file(output, "w", lazy=False) as out:
        try:
            report = verify_mirror(config, emit=lambda line: click.echo(line, file=out), notify=click.echo)
        except VerifyError as e:
            logger.error("%s", e)
            report = fatal_report(e)

    if as_json:
        click.echo(json.dumps(report.as_dict(), **CANONICAL_JSON_KW), err=True)
    raise SystemExit(0 if report.ok else 1)


@main.command("keys")
@click.argument("source", type=click.Path(exists=True, path_type=Path))
@click.option("--debug", is_flag=True, help="Turn on debug, more verbose")
def keys_cmd(source: Path, debug: bool):
    """List the identities a keyring source provides."""
    _setup_logging(debug)
    try:
        with open_keyring(source) as keyring:
            for ident in keyring.identities:
                uid = ident.uids[0] if ident.uids else ""
                owner = "" if ident.key_id == ident.primary_key_id else f" (sub of 0x{ident.primary_key_id})"
                click.echo(f"0x{ident.key_id}{owner} {ident.capabilities or '-'} {uid}".rstrip())
    except VerifyError as e:
        logger.error("%s", e)
        raise SystemExit(1)


if __name__ == "__main__":
    main()
