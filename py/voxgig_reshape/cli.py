# Copyright (c) 2025 Voxgig Ltd. MIT LICENSE.
#
# Command line interface: read the source and template JSON documents,
# transform, and write the result as JSON.
#
#   voxgig-reshape source.json template.json
#   cat source.json | voxgig-reshape - template.json --missing null


import json
import logging
from typing import Any, TextIO

import click

from . import __version__
from .log import resolve_level, setup_logging
from .voxgig_reshape import (
    MAXDEPTH,
    S_error,
    S_null,
    ReshapeError,
    jsonify,
    transform,
    transform_many,
)


log = logging.getLogger(__name__)

STDIN = '-'


def load_json(path: str, param_hint: str) -> Any:
    """Load a JSON document from a file, or from stdin if the path is "-"."""
    try:
        if STDIN == path:
            text = click.get_text_stream('stdin').read()
        else:
            with open(path, 'r', encoding='utf-8') as f:
                text = f.read()

        return json.loads(text)
    except (UnicodeDecodeError, json.JSONDecodeError) as err:
        raise click.BadParameter(f"invalid JSON: {err}", param_hint=param_hint) from err


@click.command(context_settings={'help_option_names': ['-h', '--help']})
@click.argument('source', type=click.Path(exists=True, dir_okay=False, allow_dash=True))
@click.argument('template', type=click.Path(exists=True, dir_okay=False, allow_dash=True))
@click.option('--many', is_flag=True,
              help='TEMPLATE is a list of named templates, each transformed in turn.')
@click.option('--missing', type=click.Choice([S_error, S_null]), default=S_error,
              show_default=True,
              help='Fail on missing source fields, or output null for them.')
@click.option('--max-depth', 'maxdepth', type=click.IntRange(min=1), default=MAXDEPTH,
              show_default=True, help='Recursion limit.')
@click.option('--indent', type=click.IntRange(min=0), default=2, show_default=True,
              help='Output indentation; 0 for compact output.')
@click.option('-o', '--output', type=click.File('w', encoding='utf-8'), default=STDIN,
              help='Output file (default: stdout).')
@click.option('-v', '--verbose', count=True, help='More log output (repeatable).')
@click.option('-q', '--quiet', count=True, help='Less log output (repeatable).')
@click.version_option(__version__, prog_name='voxgig-reshape')
def main(
    source: str,
    template: str,
    many: bool,
    missing: str,
    maxdepth: int,
    indent: int,
    output: TextIO,
    verbose: int,
    quiet: int,
) -> None:
    """Reshape the SOURCE JSON document into the structure of the TEMPLATE.

    Use "-" to read either document from stdin.
    """
    setup_logging(resolve_level(verbose, quiet))

    if STDIN == source and STDIN == template:
        raise click.UsageError('SOURCE and TEMPLATE cannot both be read from stdin.')

    src = load_json(source, 'SOURCE')
    tpl = load_json(template, 'TEMPLATE')
    opts = {'missing': missing, 'maxdepth': maxdepth}

    log.info('transform %s with %s', source, template)

    try:
        out = transform_many(src, tpl, opts) if many else transform(src, tpl, opts)
    except ReshapeError as err:
        log.debug('transform failed: %r', err)
        raise click.ClickException(str(err)) from err

    click.echo(jsonify(out, {'indent': indent}), file=output)
