"""docxmodel - CLI entry point for inspecting a resolved document model."""

import logging
import sys
from pathlib import Path
from typing import Optional

import click

from docxmodel.config import Settings
from docxmodel.docx_parser import parse_docx
from docxmodel.exceptions import PackageCorrupt


@click.command()
@click.argument("input_docx", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("-o", "--output", "output_json", type=click.Path(dir_okay=False, path_type=Path),
              help="Write the model here instead of stdout")
@click.option("--pretty", is_flag=True, help="Indent the JSON output")
@click.option("--no-images", is_flag=True, help="Leave image data out of the output")
@click.option("-v", "--verbose", is_flag=True, help="Enable verbose output")
def cli(input_docx: Path, output_json: Optional[Path] = None, pretty: bool = False,
        no_images: bool = False, verbose: bool = False):
    """Resolve a Word document and dump its model as JSON.

    INPUT_DOCX: Path to the input .docx file.
    """
    settings = Settings()
    logging.basicConfig(
        level=logging.DEBUG if verbose else settings.log_level.upper(),
        format="%(levelname)s %(name)s: %(message)s",
    )

    if verbose:
        click.echo(f"Parsing: {input_docx}", err=True)

    try:
        model = parse_docx(input_docx, settings)
    except PackageCorrupt as e:
        click.echo(f"Error parsing DOCX: {e}", err=True)
        sys.exit(1)

    payload = model.to_json(include_image_data=not no_images, indent=2 if pretty else None)

    if output_json:
        output_json.write_text(payload, encoding="utf-8")
        if verbose:
            click.echo(f"✓ Wrote {output_json}", err=True)
    else:
        click.echo(payload)

    if verbose:
        click.echo(
            f"  {len(model.paragraphs)} paragraphs, {len(model.tables)} tables, "
            f"{len(model.images)} images, {len(model.warnings)} warnings",
            err=True,
        )
        for warning in model.warnings:
            click.echo(f"  ⚠ {warning.code}: {warning.message}", err=True)


if __name__ == "__main__":
    cli()
