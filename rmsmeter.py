import argparse
import logging
import sys

try:
    from rich.console import Console
    from rich.logging import RichHandler
    from rich.table import Table
    from rich.panel import Panel
    from rich.progress import Progress, SpinnerColumn, BarColumn, TextColumn
    from rich import box
except ImportError:
    print("Error: The 'rich' library is required for the CLI but not installed.", file=sys.stderr)
    print("Please install it with: pip install rmsmeter[cli]", file=sys.stderr)
    sys.exit(1)

from rmslib import __version__
from rmslib.audio import dbfs_offset, format_duration, linear_to_db, probe
from rmslib.config import ConfigError, default_config, load_preset, merge_configs, validate_config
from rmslib.reports import render_text, save_json, summarize
from rmslib.stream import meter_file

console = Console()


def positive_int(value):
    ivalue = int(value)
    if ivalue <= 0:
        raise argparse.ArgumentTypeError("must be a positive integer")
    return ivalue


def non_negative_int(value):
    ivalue = int(value)
    if ivalue < 0:
        raise argparse.ArgumentTypeError("must be >= 0")
    return ivalue


def parse_arguments(argv=None):
    parser = argparse.ArgumentParser(
        description="Sliding-window RMS meter",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter
    )
    parser.add_argument("--version", action="version",
                        version=f"rmsmeter {__version__}")

    parser.add_argument("file", type=str,
                        help="Audio file to meter (any format libsndfile reads)")

    # Window (defaults come from rmslib.config so presets can override them)
    window = parser.add_mutually_exclusive_group()
    window.add_argument("--window_ms", type=float, default=None,
                        help="RMS window length in milliseconds (default 400)")
    window.add_argument("--window_samples", type=non_negative_int, default=None,
                        help="RMS window length in samples; ignores the sample rate")

    parser.add_argument("--block_frames", type=positive_int, default=None,
                        help="Frames per update, as a live host buffer would deliver (default 512)")
    parser.add_argument("--dbfs_convention", type=str, choices=["standard", "aes17"],
                        default=None, help="dBFS convention for reported levels (default standard)")
    parser.add_argument("--preset", type=str, default=None,
                        help="JSON preset file with config values")

    # Output
    parser.add_argument("--every", type=positive_int, default=1,
                        help="Show every Nth block in the table")
    parser.add_argument("--json", type=str, default=None,
                        help="Write block results and summary to this JSON file")
    parser.add_argument("-v", "--verbose", action="store_true",
                        help="Enable debug logging")

    args = parser.parse_args(argv)

    if args.window_ms is not None and args.window_ms < 0.0:
        parser.error("--window_ms must be >= 0")

    return args


def build_config(args):
    """Layer defaults, an optional preset and explicit CLI values."""
    config = default_config()
    if args.preset:
        config = merge_configs(config, load_preset(args.preset))

    cli_overrides = {
        key: getattr(args, key)
        for key in ("window_ms", "window_samples", "block_frames", "dbfs_convention")
        if getattr(args, key) is not None
    }
    if "window_ms" in cli_overrides:
        # An explicit duration beats a sample count from a preset
        cli_overrides["window_samples"] = None
    config = merge_configs(config, cli_overrides)
    validate_config(config)
    return config


def _fmt_db(linear, offset):
    db = linear_to_db(linear) + offset
    return f"{db:.1f}" if db != float("-inf") else "-inf"


def run(args):
    config = build_config(args)
    channels, samplerate, total_frames = probe(args.file)
    offset = dbfs_offset(config)

    if config["window_samples"] is not None:
        window_label = f"{config['window_samples']} samples"
    else:
        window_label = f"{config['window_ms']:g} ms"
    console.print(Panel.fit(
        f"[bold]RMS Meter[/]\n"
        f"File: [cyan]{args.file}[/]\n"
        f"Format: [cyan]{channels} ch @ {samplerate} Hz[/] | "
        f"Length: [cyan]{format_duration(total_frames, samplerate)}[/]\n"
        f"Window: [cyan]{window_label}[/] | Block: [cyan]{config['block_frames']} frames[/]",
        title="Configuration"
    ))

    results = []
    with Progress(
        SpinnerColumn(),
        TextColumn("[progress.description]{task.description}"),
        BarColumn(),
        TextColumn("{task.completed}/{task.total}"),
        console=console,
    ) as progress:
        task_id = progress.add_task("[cyan]Metering...", total=total_frames)
        for result in meter_file(args.file, config):
            results.append(result)
            progress.advance(task_id, result.frames)

    table = Table(box=box.ROUNDED, title="Block RMS (dBFS, last frame of block)")
    table.add_column("Block", justify="right", style="dim")
    table.add_column("Time", style="cyan")
    table.add_column("Avg", justify="right", style="bold green")
    for ch in range(channels):
        table.add_column(f"Ch {ch + 1}", justify="right")
    table.add_column("Block peak", justify="right", style="magenta")

    for r in results[::args.every]:
        table.add_row(
            str(r.index),
            format_duration(r.start_frame, samplerate),
            _fmt_db(r.avg_rms, offset),
            *[_fmt_db(v, offset) for v in r.per_channel_rms],
            _fmt_db(r.peak_rms, offset),
        )
    console.print(table)

    summary = summarize(results, config, samplerate)
    console.print(Panel.fit(render_text(summary), title="Summary"))

    if args.json:
        save_json(results, config, args.json, source=args.file, samplerate=samplerate)
        console.print(f"\n[dim]JSON saved to: {args.json}[/]")


def main(argv=None):
    args = parse_arguments(argv)
    if args.verbose:
        logging.basicConfig(
            level=logging.DEBUG,
            format="%(message)s",
            handlers=[RichHandler(console=console, show_path=False)],
        )
    try:
        run(args)
    except ConfigError as e:
        console.print(f"[bold red]Error:[/] {e}")
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
