## Copyright © 2025, Alex J. Champandard.  Licensed under AGPLv3; see LICENSE! ⚘
#
# hotwalk — A hot-reloadable tree-walking interpreter for a small C#-like language.
#

import sys
import time
import traceback
from pathlib import Path
from dataclasses import dataclass

import click

from .snapshot import Snapshot
from .errors import HotError, HotCancelled, HotEntryPointError, HotUnresolvedMethod
from .parser import format_source_context
from .formatting import write_without_ansi, format_item, format_diagnostics, show_stack
from .runtime import Runtime
from .session import Session
from .watcher import Reloader

from . import api


@dataclass(frozen=True)
class RuntimeConfig:
    verbose: int
    stats: bool
    plain: bool
    extended: bool
    ignore: bool


class HotRunner:
    def __init__(self, config: RuntimeConfig):
        self.verbose = config.verbose
        self.ignore = config.ignore
        self.stats_enabled = config.stats
        self.plain = config.plain

        if self.plain:
            writer = write_without_ansi(sys.stdout.write)
            sys.stdout.write, sys.stderr.write = writer, writer

        self.runtime = Runtime(extended=True) if config.extended else api._RUNTIME
        self.total_stats = {'steps': 0, 'start': time.time()} if self.stats_enabled else None
        self.failure = False
        self.executed_items = 0

    def _maybe_fatal_error(self, message: str, detail: str, exc_type: str = None, context: str = '', fatal: bool = True) -> None:
        header = detail if not exc_type else f"{detail} (Exception: \033[33m{exc_type}\033[0m)"
        print(f'\033[30;43m {message} \033[0m {header}\n{context}', file=sys.stderr)
        self.failure = self.failure or fatal
        if fatal and not self.ignore: sys.exit(1)

    def report_diagnostics(self, diagnostics, filename: str, source: str, fatal: bool = True, banner: str | None = None) -> None:
        is_syntax = any(d.phase == 'parse' for d in diagnostics)
        message = banner or ("SYNTAX ERROR." if is_syntax else "BIND ERROR.")
        detail = f"{'Parsing' if is_syntax else 'Binding'} `\033[97m{filename}\033[0m` found {len(diagnostics)} problem(s)!"
        first = diagnostics[0] if diagnostics else None
        context = format_source_context(source, first.line, first.column, first.token or '') if first else ''
        self._maybe_fatal_error(message, detail, context=context + format_diagnostics(diagnostics) + '\n', fatal=fatal)

    def _handle_exception(self, exc: Exception, filename: str, session: Session | None) -> None:
        if isinstance(exc, HotCancelled):
            print(f'\033[30;43m CANCELLED. \033[0m Program `\033[97m{filename}\033[0m` was interrupted.', file=sys.stderr)
            self.failure = True
            if not self.ignore: sys.exit(130)
            return
        if isinstance(exc, HotEntryPointError):
            self._maybe_fatal_error("RUNTIME ERROR.", str(exc), type(exc).__name__)
            return

        meta = getattr(exc, 'hot_meta', None) or {}
        token = getattr(exc, 'hot_token', None)
        detail = f"Node `\033[1;97m{token}\033[0m` caused an error in `\033[97m{filename}\033[0m`!"
        context = f"\033[90m{str(exc).replace(chr(10), ' ')}\033[0m\n"
        if isinstance(exc, HotUnresolvedMethod):
            context += "\033[90mThe target was removed, renamed or changed by the latest reload.\033[0m\n"
        if (line := meta.get('line')) and Path(filename).exists():
            source = Path(filename).read_text(encoding='utf-8', errors='replace')
            context = format_source_context(source, line, meta.get('column'), '') + context
        if not isinstance(exc, HotError):
            tb_lines = traceback.format_exception(exc, chain=False)
            context += ''.join(line for line in tb_lines if "src/hotwalk/" not in line and "<frozen" not in line)
        if session is not None and session.stack.depth:
            print(f'\033[1;33m  Stack content is\033[0;33m\n    ', end='', file=sys.stderr)
            show_stack(session.stack, width=None, file=sys.stderr, abbreviate=True)
            print('\033[0m', end='', file=sys.stderr)
        self._maybe_fatal_error("RUNTIME ERROR.", detail, type(exc).__name__, context)

    def read_source(self, path: Path) -> str | None:
        try:
            return path.read_text(encoding='utf-8')
        except (OSError, UnicodeDecodeError) as exc:
            self._maybe_fatal_error("FILE ERROR.", f"Cannot read `\033[97m{path}\033[0m` as UTF-8 source.", type(exc).__name__, f"\033[90m{exc}\033[0m\n")
            return None

    def build(self, source: str, filename: str) -> Snapshot | None:
        candidate = self.runtime.build(source, filename=filename)
        if isinstance(candidate, Snapshot):
            return candidate
        self.report_diagnostics(candidate, filename, source)
        return None

    def check(self, path: Path) -> None:
        if (source := self.read_source(path)) is None:
            return
        if self.build(source, str(path)) is not None:
            print(f"\033[97m\033[48;5;30m OK. \033[0m `{path}` binds without errors.")
            self.executed_items += 1

    def execute_file(self, path: Path, args: tuple[str, ...], watch: bool = False) -> int | None:
        filename = str(path)
        if (source := self.read_source(path)) is None:
            return None
        if (snapshot := self.build(source, filename)) is None:
            return None

        session = Session(snapshot, library=self.runtime.library, operators=self.runtime.operators,
                          verbosity=self.verbose, stats=self.total_stats)
        watcher = None
        if watch:
            reloader = Reloader(session, self.runtime.library, path,
                                on_reload=lambda s: print(f'\033[30;42m RELOADED. \033[0m `{filename}` is now generation {session.generation}.', file=sys.stderr),
                                on_rejected=lambda d: self.report_diagnostics(d, filename, path.read_text(encoding='utf-8', errors='replace'), fatal=False, banner="RELOAD REJECTED."))
            watcher = reloader.watch()

        try:
            result = session.run(args)
        except KeyboardInterrupt:
            self._handle_exception(HotCancelled("Interrupted by user."), filename, session)
            return None
        except (HotError, Exception) as exc:
            self._handle_exception(exc, filename, session)
            return None
        finally:
            if watcher is not None: watcher.stop()
            session.close()

        self.executed_items += 1
        if result is not None and self.verbose > 0:
            print("\033[90m>>>\033[0m", format_item(result))
        return result

    def finalize(self, exit_code: int | None = None) -> int:
        if self.total_stats and self.executed_items > 0:
            elapsed_time = time.time() - self.total_stats['start']
            print(f"\n\033[97m\033[48;5;30m STATISTICS. \033[0m")
            print(f"step\t\033[97m{self.total_stats['steps']:,}\033[0m")
            print(f"time\t\033[97m{elapsed_time:.3f}s\033[0m")
        if self.failure: return 1
        return exit_code or 0


@click.group(invoke_without_command=True)
@click.option('--verbose', '-v', default=0, count=True, help='Trace method entries (-v) or every statement (-vv).')
@click.option('--stats', is_flag=True, help='Display execution statistics (e.g., number of steps).')
@click.option('--plain', '-p', is_flag=True, help='Strip ANSI color codes and redirect stderr to stdout.')
@click.option('--extended', '-x', is_flag=True, help='Enable the extended operator table (- * / != < > <= >=).')
@click.option('--ignore', '-i', is_flag=True, help='Report errors but keep going instead of exiting.')
@click.pass_context
def cli(ctx: click.Context, verbose: int, stats: bool, plain: bool, extended: bool, ignore: bool) -> None:
    ctx.ensure_object(dict)
    ctx.obj['config'] = RuntimeConfig(verbose=verbose, stats=stats, plain=plain, extended=extended, ignore=ignore)
    if ctx.invoked_subcommand is None:
        click.echo(ctx.get_help())


@cli.command('run')
@click.argument('script', type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.argument('program_args', nargs=-1)
@click.option('--watch', '-w', is_flag=True, help='Reload the program whenever the file changes.')
@click.pass_context
def run(ctx: click.Context, script: Path, program_args: tuple[str, ...], watch: bool) -> None:
    runner = HotRunner(ctx.obj['config'])
    result = runner.execute_file(script, program_args, watch=watch)
    exit_code = result if isinstance(result, int) and not isinstance(result, bool) else None
    ctx.exit(runner.finalize(exit_code))


@cli.command('check')
@click.argument('script', type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.pass_context
def check(ctx: click.Context, script: Path) -> None:
    runner = HotRunner(ctx.obj['config'])
    runner.check(script)
    ctx.exit(runner.finalize())


def main(argv: list[str] | None = None) -> None:
    a = list(sys.argv[1:] if argv is None else argv)
    pos = [t for t in a if not t.startswith('-')]
    # `hotwalk FILE ...` is shorthand for `hotwalk run FILE ...`.
    if pos and pos[0] not in cli.commands and pos[0].endswith('.hw'):
        i = a.index(pos[0])
        a = a[:i] + ['run'] + a[i:]
    cli.main(args=a, prog_name='hotwalk')


if __name__ == "__main__":
    main()
