"""
Main CLI entry point for the lunch menu scraper.
Scrapes every configured restaurant page in a single browser session.
"""
import argparse
import asyncio
import logging
import sys
from typing import List

from rich.console import Console
from rich.logging import RichHandler
from rich.progress import Progress, SpinnerColumn, TextColumn
from rich.table import Table

from .config import ScraperConfig, load_config_from_env, load_config_from_file
from .fetch import BrowserSession, PageSynchronizer, PlaywrightSession, prime_session
from .models import RestaurantCollection
from .parse import build_restaurant

console = Console()


def setup_logging(config: ScraperConfig):
    """Setup structured logging"""
    logging.basicConfig(
        level=getattr(logging, config.log_level.upper()),
        format="%(message)s",
        datefmt="[%X]",
        handlers=[
            RichHandler(console=console, rich_tracebacks=True),
            logging.FileHandler(config.log_file) if config.log_file else logging.NullHandler()
        ]
    )


async def scrape_restaurants(
    urls: List[str],
    config: ScraperConfig,
    session: BrowserSession,
    logger: logging.Logger = None
) -> RestaurantCollection:
    """
    Scrape restaurants one URL at a time

    A failure on one page is logged and the run moves on to the next URL.
    Restaurants without a menu today are left out.
    """
    logger = logger or logging.getLogger(__name__)
    restaurants = RestaurantCollection()
    synchronizer = PageSynchronizer(session, config, logger)

    await prime_session(session, config, logger)

    with Progress(
        SpinnerColumn(),
        TextColumn("[progress.description]{task.description}"),
        console=console,
        transient=True
    ) as progress:
        task = progress.add_task("Scraping restaurants...", total=len(urls))

        for url in urls:
            progress.update(task, description=f"Scraping {url[-50:]}...")
            logger.info(f"Scraping {url}")

            try:
                page = await synchronizer.scrape(url)
                if page is not None:
                    restaurant = build_restaurant(page.name, page.days, config.selectors, logger)
                    if not restaurants.add(restaurant):
                        logger.warning(f"Restaurant {restaurant.name} already scraped, ignoring {url}")
            except Exception as e:
                if config.debug_mode:
                    logger.exception(f"Failed to scrape {url}")
                else:
                    logger.error(f"Failed to scrape {url}: {type(e).__name__}: {e}")
            finally:
                progress.advance(task)

    return restaurants


def print_summary(restaurants: RestaurantCollection):
    table = Table(title="Restaurants")
    table.add_column("Restaurant", style="cyan")
    table.add_column("Meals", style="green", justify="right")
    table.add_column("Opening hours")

    for restaurant in restaurants:
        table.add_row(restaurant.name, str(len(restaurant.meals)), restaurant.opening_hours or "-")

    console.print(table)


async def main_async(args):
    """Main async function"""
    # Load configuration
    config = load_config_from_file(args.config) if args.config else load_config_from_env()

    # Override with CLI arguments
    if args.headless is not None:
        config.headless = args.headless
    if args.url:
        config.restaurant_urls = args.url
    if args.log_file is not None:
        config.log_file = args.log_file
    if args.debug:
        config.debug_mode = True
        config.log_level = "DEBUG"

    # Setup logging
    setup_logging(config)

    console.print("[bold green]Lunch Scraper Starting[/bold green]")
    console.print(f"Restaurants: {len(config.restaurant_urls)}")

    async with PlaywrightSession(config) as session:
        restaurants = await scrape_restaurants(config.restaurant_urls, config, session)

    console.print(f"\n[bold green]Scraped {len(restaurants)} restaurants[/bold green]")
    print_summary(restaurants)
    return restaurants


def main():
    """CLI entry point"""
    parser = argparse.ArgumentParser(
        description="Scrape today's lunch menus of the Unica restaurants",
        formatter_class=argparse.RawDescriptionHelpFormatter
    )

    parser.add_argument(
        '--config',
        help='Path to YAML configuration file'
    )

    parser.add_argument(
        '--url',
        action='append',
        help='Restaurant page to scrape instead of the configured list (repeatable)'
    )

    parser.add_argument(
        '--headless',
        action='store_true',
        default=None,
        help='Run browser in headless mode (default: True)'
    )

    parser.add_argument(
        '--no-headless',
        dest='headless',
        action='store_false',
        help='Run browser with GUI'
    )

    parser.add_argument(
        '--log-file',
        help='Log file path, empty string disables file logging'
    )

    parser.add_argument(
        '--debug',
        action='store_true',
        help='Enable debug mode with verbose logging'
    )

    args = parser.parse_args()

    # Run async main
    try:
        asyncio.run(main_async(args))
    except KeyboardInterrupt:
        console.print("\n[yellow]Interrupted by user[/yellow]")
        sys.exit(1)
    except Exception as e:
        console.print(f"\n[red]Fatal error: {e}[/red]")
        if args.debug:
            import traceback
            console.print(traceback.format_exc())
        sys.exit(1)


if __name__ == '__main__':
    main()
