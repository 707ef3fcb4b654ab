# main.py

"""Entry point for the price tracker (TUI or headless commands)."""

import argparse
import logging
import sys

from price_tracker.config.logging_config import setup_logging

logger = logging.getLogger("price_tracker.main")


def _build_parser() -> argparse.ArgumentParser:
    """Build the argument parser for the CLI."""
    parser = argparse.ArgumentParser(
        prog="price-tracker",
        description="Track product prices and wishlists.",
        epilog="Run without arguments to launch the interactive TUI.",
    )
    parser.add_argument(
        "--list",
        action="store_true",
        default=False,
        dest="list_products",
        help="Print your tracked products and exit.",
    )
    parser.add_argument(
        "--record-price",
        nargs=2,
        metavar=("PRODUCT_ID", "PRICE"),
        default=None,
        help="Set a product's current price (local backend) and record it.",
    )
    parser.add_argument(
        "--export-chart",
        metavar="PRODUCT_ID",
        default=None,
        help="Write a product's price history as an HTML chart.",
    )
    parser.add_argument(
        "--email",
        default=None,
        help="Account email for headless commands.",
    )
    parser.add_argument(
        "--password",
        default=None,
        help="Account password (prompted when omitted).",
    )
    return parser


def _run_tui() -> None:
    """Launch the interactive Textual TUI."""
    from price_tracker.services.image_loader import ImageLoader
    from price_tracker.ui.app import PriceTrackerApp

    loader = ImageLoader()
    try:
        app = PriceTrackerApp(image_loader=loader.load)
        app.run()
    except Exception:
        logger.critical("Fatal error during TUI run", exc_info=True)
        raise
    finally:
        loader.close()
        logger.info("price_tracker TUI shutting down")


def main() -> None:
    """Route to the TUI (no args) or a headless command."""
    parser = _build_parser()
    args = parser.parse_args()

    headless = bool(
        args.record_price or args.export_chart or args.list_products
    )
    log_file = setup_logging(console=headless)
    logger.info("price_tracker starting, log file: %s", log_file)

    from price_tracker.cli import runner

    if args.record_price is not None:
        product_id, price = args.record_price
        sys.exit(runner.run_record_price(product_id, price))
    elif args.export_chart is not None:
        sys.exit(
            runner.run_export_chart(args.export_chart, args.email, args.password)
        )
    elif args.list_products:
        sys.exit(runner.run_list_products(args.email, args.password))
    else:
        _run_tui()


if __name__ == "__main__":
    main()
