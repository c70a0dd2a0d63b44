"""HTTP access for source parsers.

Every request to a source goes through a `ScrapeContext`, which checks the
origin's robots.txt first and applies the per-source courtesy delay.
"""

from protest_pipeline.extractors.fetch import HEADERS, CrawlDisallowedError, ScrapeContext
from protest_pipeline.extractors.robots import RobotsCache, RobotsPolicy, parse_robots_txt

__all__ = [
    "HEADERS",
    "CrawlDisallowedError",
    "ScrapeContext",
    "RobotsCache",
    "RobotsPolicy",
    "parse_robots_txt",
]
