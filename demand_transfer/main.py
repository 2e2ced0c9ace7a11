import argparse
import sys

from demand_transfer.config import config
from demand_transfer.exceptions import DemandTransferError
from demand_transfer.logging_setup import configure_root_logger, get_logger, log_exception
from demand_transfer.models import WeekKey
from demand_transfer.services.engine import DemandTransferEngine
from demand_transfer.spreadsheet import SpreadsheetLoader
from demand_transfer.utils.math_utils import format_quantity

def load_engine(args):
    """Read the input file into a fresh engine."""
    engine = DemandTransferEngine()
    rows = SpreadsheetLoader.read_rows(args.file, sheet_name=args.sheet)
    engine.load_records(rows)
    if getattr(args, 'plant', None):
        engine.set_plant_filter(args.plant)
    return engine

def print_view(view):
    status = ' (Done)' if view.is_completed else ''
    print(f"DFU {view.dfu_code}{status}: {len(view.variants)} variants, {view.total_records} records")
    for variant in view.variants:
        summary = view.variant_demand[variant]
        print(
            f"  {variant:<20} {format_quantity(summary.total_demand):>12}  "
            f"{summary.record_count:>4} rows  {summary.description}"
        )

def print_completion(completion):
    if completion is None:
        print("No transfer was staged")
        return

    print(
        f"{completion.transfer_type.value.capitalize()} transfer for DFU {completion.dfu_code} "
        f"at {completion.timestamp}: {completion.transfer_count} transfers"
    )
    for entry in completion.entries:
        week = f" W{entry.week}" if entry.week is not None else ''
        print(f"  {entry.from_variant} -> {entry.to_variant}{week}: {format_quantity(entry.amount)}")

def show_summary(args):
    """Print multi-variant DFUs with per-variant totals."""
    engine = load_engine(args)
    views = engine.search(args.search)

    if engine.plant_locations:
        print(f"Plant locations: {', '.join(engine.plant_locations)}")

    if not views:
        print("No DFU codes with multiple variants found")
        return True

    for view in views.values():
        print_view(view)
    return True

def finish_transfer(engine, args):
    completion = engine.execute(args.dfu)
    print_completion(completion)

    output = args.output or config.export_config['file_name']
    SpreadsheetLoader.write_rows(engine.export_records(), output)
    print(f"Exported updated demand to {output}")
    return True

def run_bulk(args):
    engine = load_engine(args)
    engine.stage_bulk(args.dfu, args.target)
    return finish_transfer(engine, args)

def run_individual(args):
    engine = load_engine(args)
    for mapping in args.map:
        source, separator, target = mapping.partition('=')
        if not separator:
            raise argparse.ArgumentTypeError(f"Invalid mapping {mapping!r}, expected SOURCE=TARGET")
        engine.stage_individual(args.dfu, source.strip(), target.strip())
    return finish_transfer(engine, args)

def run_granular(args):
    engine = load_engine(args)
    for week in args.week:
        week_text, _, quantity = week.partition('=')
        engine.stage_granular(
            args.dfu, args.source, args.target, WeekKey.parse(week_text), True, quantity or None
        )
    return finish_transfer(engine, args)

def build_parser():
    parser = argparse.ArgumentParser(description='Demand transfer reconciliation for multi-variant DFUs')
    subparsers = parser.add_subparsers(dest='command', help='Commands')

    def add_input(sub):
        sub.add_argument('file', help='Excel or CSV file with demand rows')
        sub.add_argument('--sheet', type=str, help='Sheet to read (defaults to the configured preference)')
        sub.add_argument('--plant', type=str, help='Restrict to one plant location')

    def add_output(sub):
        sub.add_argument('--dfu', required=True, help='DFU code to transfer')
        sub.add_argument('--output', '-o', type=str, help='Output workbook path')

    summary_parser = subparsers.add_parser('summary', help='List DFUs with multiple variants')
    add_input(summary_parser)
    summary_parser.add_argument('--search', type=str, help='Filter by DFU code or variant')

    bulk_parser = subparsers.add_parser('bulk', help='Transfer every variant of a DFU into one target')
    add_input(bulk_parser)
    add_output(bulk_parser)
    bulk_parser.add_argument('--target', required=True, help='Target variant')

    individual_parser = subparsers.add_parser('individual', help='Transfer source variants to chosen targets')
    add_input(individual_parser)
    add_output(individual_parser)
    individual_parser.add_argument('--map', action='append', required=True,
                                   help='SOURCE=TARGET mapping, repeatable')

    granular_parser = subparsers.add_parser('granular', help='Transfer selected weeks of one variant')
    add_input(granular_parser)
    add_output(granular_parser)
    granular_parser.add_argument('--source', required=True, help='Source variant')
    granular_parser.add_argument('--target', required=True, help='Target variant')
    granular_parser.add_argument('--week', action='append', required=True,
                                 help='WEEK-LOCATION or WEEK-LOCATION=QUANTITY, repeatable')

    return parser

COMMANDS = {
    'summary': show_summary,
    'bulk': run_bulk,
    'individual': run_individual,
    'granular': run_granular
}

def main(argv=None):
    """Main application entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.command not in COMMANDS:
        parser.print_help()
        return 1

    configure_root_logger()
    log = get_logger('demand_transfer')

    try:
        COMMANDS[args.command](args)
    except (DemandTransferError, argparse.ArgumentTypeError) as e:
        log.error(str(e))
        return 1
    except Exception as e:
        log_exception('demand_transfer', e, f"Unexpected error in {args.command}")
        return 1

    return 0

if __name__ == "__main__":
    sys.exit(main())
