"""
Configuration module for the lunch menu scraper.
All settings can be overridden via CLI arguments, environment variables or a YAML file.
"""
import os
from typing import List, Dict
from dataclasses import dataclass, field
from pathlib import Path


SITE_ROOT = "https://www.unica.fi/en/"

# Restaurant pages scraped on every run, in output order
RESTAURANT_URLS = [
    "https://www.unica.fi/en/restaurants/university-campus/assarin-ullakko/",
    "https://www.unica.fi/en/restaurants/university-campus/galilei/",
    "https://www.unica.fi/en/restaurants/university-campus/macciavelli/",
    "https://www.unica.fi/en/restaurants/university-campus/monttu-ja-mercatori/",
    "https://www.unica.fi/en/restaurants/kupittaa-campus/deli-pharma/",
    "https://www.unica.fi/en/restaurants/kupittaa-campus/delica/",
    "https://www.unica.fi/en/restaurants/kupittaa-campus/dental/",
    "https://www.unica.fi/en/restaurants/kupittaa-campus/kisalli/",
    "https://www.unica.fi/en/restaurants/kupittaa-campus/linus/",
    "https://www.unica.fi/en/restaurants/art-campus/sigyn/",
    "https://www.unica.fi/en/restaurants/others/unican-kulma/",
    "https://www.unica.fi/en/restaurants/others/fabrik-cafe/",
    "https://www.unica.fi/en/restaurants/others/piccu-maccia/",
    "https://www.unica.fi/en/restaurants/others/puutorin-nurkka/",
    "https://www.unica.fi/en/restaurants/other-restaurants/henkilostoravintola-waino/",
    "https://www.unica.fi/en/restaurants/other-restaurants/kaffeli/",
    "https://www.unica.fi/en/restaurants/other-restaurants/kaivomestari/",
    "https://www.unica.fi/en/restaurants/other-restaurants/lemminkainen/",
    "https://www.unica.fi/en/restaurants/other-restaurants/mairela/",
    "https://www.unica.fi/en/restaurants/other-restaurants/rammeri/",
    "https://www.unica.fi/en/restaurants/other-restaurants/ruokakello/",
]

# CSS selectors for the live page and the snapshot - keep in sync with the site markup
SELECTORS = {
    "cookie_decline": "#declineButton",
    "menu_package": ".lunch-menu-block__menu-package",
    "accordion": "button.compass-accordion__header",
    "meal_item": ".meal-item",
    "title": 'h1[data-epi-property-name="Title"]',
    "day": ".lunch-day",
    "day_heading": "h4",
    "day_hours": "p",
    "station_heading": "h5",
    "station_prices": "p",
    "meal_name": "span",
    "allergens": "div.meal-item--name-container > p",
}


# Global scraping configuration
@dataclass
class ScraperConfig:
    """Main configuration class for the scraper"""

    # Source Configuration
    site_root: str = SITE_ROOT
    restaurant_urls: List[str] = field(default_factory=lambda: list(RESTAURANT_URLS))
    selectors: Dict[str, str] = field(default_factory=lambda: dict(SELECTORS))

    # Rendering waits (seconds)
    banner_timeout: float = 3.0
    menu_presence_timeout: float = 3.0
    accordion_timeout: float = 6.0
    render_timeout: float = 30.0  # page budget for client-side rendering
    poll_interval: float = 0.25
    accordion_click_attempts: int = 2

    # Browser Configuration
    headless: bool = True
    browser_type: str = "chromium"  # chromium, firefox, webkit
    viewport_width: int = 1920
    viewport_height: int = 1080
    slow_mo: int = 0  # milliseconds
    request_timeout: int = 30  # seconds
    browser_args: List[str] = field(default_factory=lambda: [
        '--no-sandbox',
        '--disable-dev-shm-usage',
        '--disable-gpu',
        '--disable-extensions',
        '--disable-background-networking',
        '--disable-sync',
        '--disable-default-apps',
        '--disable-features=TranslateUI',
    ])

    # Logging
    log_level: str = "INFO"
    log_file: str = "scraper.log"
    debug_mode: bool = False

    def selector(self, name: str) -> str:
        """Get a CSS selector by name"""
        return self.selectors[name]


def load_config_from_env() -> ScraperConfig:
    """Load configuration from environment variables"""
    config = ScraperConfig()

    # Override from environment
    if os.getenv("SCRAPER_HEADLESS"):
        config.headless = os.getenv("SCRAPER_HEADLESS").lower() == "true"

    if os.getenv("SCRAPER_BROWSER"):
        config.browser_type = os.getenv("SCRAPER_BROWSER")

    if os.getenv("SCRAPER_RENDER_TIMEOUT"):
        config.render_timeout = float(os.getenv("SCRAPER_RENDER_TIMEOUT"))

    if os.getenv("SCRAPER_LOG_LEVEL"):
        config.log_level = os.getenv("SCRAPER_LOG_LEVEL")

    if os.getenv("SCRAPER_LOG_FILE") is not None:
        config.log_file = os.getenv("SCRAPER_LOG_FILE")

    return config


def load_config_from_file(config_path: str) -> ScraperConfig:
    """Load configuration from YAML file"""
    import yaml

    config = load_config_from_env()

    if not Path(config_path).exists():
        return config

    with open(config_path, 'r') as f:
        yaml_config = yaml.safe_load(f)

    if yaml_config:
        for key, value in yaml_config.items():
            if key == "selectors" and isinstance(value, dict):
                config.selectors.update(value)
            elif hasattr(config, key):
                setattr(config, key, value)

    return config
