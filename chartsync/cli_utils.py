"""
Common CLI utilities and decorators for consistent command behavior.
"""

import json
import logging
import sys
from functools import wraps
from typing import Any, Generator

import click

from .exit_codes import (
    SUCCESS, INTERRUPTED,
    get_exit_code_for_exception, CommandError
)

logger = logging.getLogger(__name__)


def standard_command(func):
    """
    Decorator that provides standard CLI behavior:
    - Clean JSONL output on stdout (dicts, lists or generators of dicts)
    - --quiet/-q suppresses data output
    - Consistent error handling: a JSON error object and a specific exit code

    Commands may also raise CommandError to pick their exit code.
    """
    @wraps(func)
    def wrapper(*args, **kwargs):
        quiet = kwargs.get('quiet', False)

        try:
            result = func(*args, **kwargs)

            if quiet:
                # Consume the generator but don't output
                if isinstance(result, Generator):
                    for _ in result:
                        pass
            elif result is not None:
                output_result(result)

            sys.exit(SUCCESS)

        except KeyboardInterrupt:
            logger.error("Interrupted by user")
            sys.exit(INTERRUPTED)
        except click.ClickException:
            # Click exceptions already have their exit code
            raise
        except CommandError as e:
            logger.error(str(e))
            if not quiet:
                error_obj = {
                    "error": str(e),
                    "type": type(e).__name__,
                    "exit_code": e.exit_code
                }
                print(json.dumps(error_obj, ensure_ascii=False), flush=True)
            sys.exit(e.exit_code)
        except Exception as e:
            logger.error(f"Command failed: {e}")
            if not quiet:
                error_obj = {
                    "error": str(e),
                    "type": type(e).__name__
                }
                print(json.dumps(error_obj, ensure_ascii=False), flush=True)
            sys.exit(get_exit_code_for_exception(e))

    return wrapper


def output_result(result: Any):
    """
    Standard output handler for results.

    Args:
        result: The result to output (dict, list, or generator)
    """
    if isinstance(result, (Generator, list, tuple)):
        for item in result:
            print(json.dumps(item, ensure_ascii=False), flush=True)
    elif isinstance(result, dict):
        print(json.dumps(result, ensure_ascii=False), flush=True)
    else:
        print(result, flush=True)


# Standard options that many commands share
common_options = {
    'quiet': click.option('-q', '--quiet', is_flag=True,
                         help='Suppress data output, show only log messages'),
    'pretty': click.option('--pretty', is_flag=True,
                          help='Display as a formatted table instead of JSONL'),
}


def add_common_options(*option_names):
    """
    Decorator to add common options to a command.

    Example:
        @add_common_options('quiet', 'pretty')
        def my_command(quiet, pretty):
            ...
    """
    def decorator(func):
        for name in reversed(option_names):
            if name in common_options:
                func = common_options[name](func)
        return func
    return decorator
