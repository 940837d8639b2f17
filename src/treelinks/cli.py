from __future__ import annotations

import logging
from pathlib import Path
from typing import NoReturn

import typer
from rich.console import Console

from treelinks.config import default_config
from treelinks.errors import TreeLinksError
from treelinks.manifest import Manifest, manifests_equal, verify_root_hash
from treelinks.runtime import configure_logging

app = typer.Typer(help="treelinks: content manifests for directory trees")

console = Console(soft_wrap=True)
logger = logging.getLogger(__name__)

ROOT_ARGUMENT = typer.Argument(..., exists=True, file_okay=False, dir_okay=True)
NAME_OPTION = typer.Option("", "--name", help="Manifest file name prefix")
IGNORE_OPTION = typer.Option(None, "--ignore", help="Path prefix to exclude (repeatable)")
AUTO_IGNORE_OPTION = typer.Option(False, "--auto-ignore", help="Skip unreadable files")
OUT_DIR_OPTION = typer.Option(None, "--out", "--out-dir", file_okay=False)
MANIFEST_DIR_OPTION = typer.Option(None, "--manifest-dir", file_okay=False)
VERBOSE_OPTION = typer.Option(False, "--verbose", "-v")


def _fail(message: str) -> NoReturn:
    console.print(message, markup=False)
    raise typer.Exit(code=1)


@app.callback()
def main(verbose: bool = VERBOSE_OPTION) -> None:
    configure_logging(logging.DEBUG if verbose else logging.WARNING)


@app.command("generate")
def generate(
    root: Path = ROOT_ARGUMENT,
    ignore: list[str] | None = IGNORE_OPTION,
    auto_ignore: bool = AUTO_IGNORE_OPTION,
    name: str = NAME_OPTION,
    out_dir: Path | None = OUT_DIR_OPTION,
) -> None:
    logger.info("generate start root=%s", root)
    try:
        manifest = Manifest(root, name=name, config=default_config())
        manifest.set_ignore_paths(ignore or [])
        manifest.auto_ignore = auto_ignore
        manifest.reserve_path(manifest.manifest_path(out_dir or root))
        result = manifest.generate()
        target = manifest.save(out_dir or root)
    except TreeLinksError as exc:
        _fail(f"Generate FAIL: {exc}")
    for path in result.warnings:
        console.print(f"Ignored (permission denied): {path}", markup=False)
    console.print(f"Entries: {len(result.archive)}")
    console.print(f"Root hash: {result.root_digest.hex()}")
    console.print(f"Manifest: {target}", markup=False)


@app.command("verify")
def verify(
    root: Path = ROOT_ARGUMENT,
    name: str = NAME_OPTION,
    manifest_dir: Path | None = MANIFEST_DIR_OPTION,
) -> None:
    logger.info("verify start root=%s", root)
    try:
        config = default_config()
        saved = Manifest.from_file(manifest_dir or root, name=name, config=config)
    except TreeLinksError as exc:
        _fail(f"Verify FAIL: {exc}")
    if not verify_root_hash(saved):
        _fail("Verify FAIL: stored root hash does not match stored archive")

    current = Manifest(root, name=name, config=config)
    current.set_ignore_paths(saved.ignore_paths)
    current.auto_ignore = saved.auto_ignore
    current.reserve_path(current.manifest_path(manifest_dir or root))
    try:
        current.generate()
    except TreeLinksError as exc:
        _fail(f"Verify FAIL: {exc}")
    if not manifests_equal(saved, current):
        _fail("Verify FAIL: directory contents changed")
    logger.info("verify pass root=%s", root)
    console.print("Verify PASS")


@app.command("show")
def show(
    directory: Path = ROOT_ARGUMENT,
    name: str = NAME_OPTION,
) -> None:
    try:
        manifest = Manifest.from_file(directory, name=name, config=default_config())
    except TreeLinksError as exc:
        _fail(f"Show FAIL: {exc}")
    for line in manifest.describe():
        console.print(line, markup=False)


if __name__ == "__main__":
    app()
