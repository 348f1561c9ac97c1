#!/usr/bin/env python3
"""
Command-line interface for the AMM base fee engine.

Sub-commands:
    calibrate  derive xscale / yscale from a target price and 2x/1x ratio
    quote      price one block against a given gas excess
    replay     replay one or more block CSVs and print fee metrics
"""

import sys
import argparse
import logging

from ..config import OracleSettings
from ..core.calibration import calculate_scales
from ..core.errors import FeeMechanismError
from ..core.excess_state import ExcessStateMachine
from ..core.simulation_engine import SimulationEngine
from ..core.units import saturate_uint64, validate_uint32, wei_to_gwei
from ..data.loader import DataLoader

logger = logging.getLogger(__name__)


def setup_logging(verbose: bool = False):
    """Setup logging configuration."""
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        handlers=[logging.StreamHandler()]
    )


def cmd_calibrate(args):
    """Handle calibrate command."""
    result = calculate_scales(args.gas_excess_max, args.price, args.target, args.ratio)
    print(f"xscale = {result.xscale}")
    print(f"yscale = {result.yscale}")
    print(f"ratio_2x1x = {result.ratio_2x1x}")


def cmd_quote(args):
    """Handle quote command."""
    settings = OracleSettings.from_env()
    params = settings.parameters
    machine = ExcessStateMachine(params)

    validate_uint32(args.gas_used, "gas_used")
    gas_excess = args.gas_excess if args.gas_excess is not None else params.neutral_excess
    if not (0 <= gas_excess <= params.gas_excess_max):
        raise ValueError(f"gas_excess {gas_excess:,} outside [0, {params.gas_excess_max:,}]")

    quote = machine.compute(gas_excess, args.elapsed, args.gas_used)
    base_fee = saturate_uint64(quote.base_fee_per_gas)
    print(f"base_fee_per_gas = {base_fee} ({wei_to_gwei(base_fee):.9f} gwei)")
    print(f"gas_excess = {quote.gas_excess}")


def cmd_replay(args):
    """Handle replay command."""
    loader = DataLoader()
    if len(args.files) == 1:
        df = loader.load_csv(args.files[0])
    else:
        df = loader.load_multiple_files(args.files)

    continuity = loader.validate_data_continuity(df, max_gap_seconds=args.max_gap)
    if not continuity['is_continuous']:
        logger.warning(
            f"{continuity['total_gaps']} gaps longer than {args.max_gap}s "
            f"(largest {continuity['max_gap_seconds']}s)"
        )

    timestamps, gas_used = loader.extract_block_series(df)

    settings = OracleSettings.from_env()
    engine = SimulationEngine(
        settings.parameters,
        on_reject="skip" if args.skip_rejected else "raise",
    )
    results = engine.simulate_series(timestamps, gas_used)
    metrics = engine.calculate_metrics(results)

    if args.output:
        results.to_csv(args.output, index=False)
        print(f"Saved {len(results)} blocks to {args.output}")

    if not args.quiet:
        summary = loader.get_data_summary(df)
        print(f"\n=== Replay of {', '.join(args.files)} ===")
        print(f"blocks: {summary['record_count']:,} over {summary['time_range']['duration_hours']:.2f}h, "
              f"total gas {summary['gas_used_stats']['total']:,}")
        for name, value in metrics.items():
            print(f"{name}: {value:,.6f}")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="AMM-style EIP-1559 base fee tools",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s calibrate --gas-excess-max 90900000000 --price 1000000000 --target 150000000 --ratio <RATIO>
  %(prog)s quote --gas-used 15000000 --elapsed 12
  %(prog)s replay blocks.csv --output fees.csv
  %(prog)s replay day1.csv day2.csv --max-gap 120
        """
    )
    parser.add_argument('--verbose', '-v', action='store_true', help='Verbose output')
    parser.add_argument('--quiet', '-q', action='store_true', help='Quiet output')

    subparsers = parser.add_subparsers(dest='command', help='Available commands')

    calibrate_parser = subparsers.add_parser('calibrate', help='Derive xscale / yscale')
    calibrate_parser.add_argument('--gas-excess-max', type=int, required=True, help='Gas excess ceiling')
    calibrate_parser.add_argument('--price', type=int, required=True, help='Target base fee in wei per gas')
    calibrate_parser.add_argument('--target', type=int, required=True, help='Target gas per block')
    calibrate_parser.add_argument('--ratio', type=int, required=True, help='Expected 2x/1x price ratio (basis points)')

    quote_parser = subparsers.add_parser('quote', help='Price one block')
    quote_parser.add_argument('--gas-used', type=int, required=True, help='Gas used by the block')
    quote_parser.add_argument('--elapsed', type=int, default=0, help='Seconds since the last update')
    quote_parser.add_argument('--gas-excess', type=int, help='Current gas excess (default: neutral point)')

    replay_parser = subparsers.add_parser('replay', help='Replay a block CSV')
    replay_parser.add_argument('files', nargs='+', help='CSV files with timestamp,gas_used columns')
    replay_parser.add_argument('--max-gap', type=int, default=60,
                               help='Warn about gaps between blocks longer than this (seconds)')
    replay_parser.add_argument('--output', '-o', help='Write per-block results to this CSV')
    replay_parser.add_argument('--skip-rejected', action='store_true',
                               help='Record over-limit blocks instead of aborting')

    return parser


def main(argv=None):
    parser = build_parser()
    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        return 1

    setup_logging(args.verbose)

    commands = {
        'calibrate': cmd_calibrate,
        'quote': cmd_quote,
        'replay': cmd_replay,
    }

    try:
        commands[args.command](args)
    except FeeMechanismError as e:
        logger.error(f"{type(e).__name__}: {e}")
        return 2
    except (ValueError, FileNotFoundError) as e:
        logger.error(str(e))
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
