"""robots.txt crawl-permission gate.

Rules are matched as literal path prefixes and the longest matching rule
wins, with ties going to Allow. `urllib.robotparser` applies the first
matching rule instead, so the parsing here is done by hand.
"""

import asyncio
from dataclasses import dataclass, field
from typing import Optional
from urllib.parse import urlparse

import httpx
from rich.console import Console

console = Console()

ROBOTS_TIMEOUT = 5.0


@dataclass
class RobotsRule:
    allow: bool
    path: str


@dataclass
class RobotsPolicy:
    """Parsed robots.txt: normalized agent name -> rules."""

    groups: dict[str, list[RobotsRule]] = field(default_factory=dict)

    def rules_for(self, agent: str) -> list[RobotsRule]:
        name = normalize_agent(agent)
        if name in self.groups:
            return self.groups[name]
        return self.groups.get("*", [])

    def is_allowed(self, target: str, agent: str) -> bool:
        """Check a path (with optional "?query") for an agent."""
        best: Optional[RobotsRule] = None
        for rule in self.rules_for(agent):
            if not target.startswith(rule.path):
                continue
            if (
                best is None
                or len(rule.path) > len(best.path)
                or (len(rule.path) == len(best.path) and rule.allow)
            ):
                best = rule
        return best is None or best.allow


ALLOW_ALL = RobotsPolicy()


def normalize_agent(agent: str) -> str:
    """'Protest-Scraper/1.0 (+url)' -> 'protest-scraper'."""
    token = agent.strip().split("/", 1)[0].split(" ", 1)[0]
    return token.lower() or "*"


def parse_robots_txt(text: str) -> RobotsPolicy:
    """Parse robots.txt content into per-agent rule groups."""
    policy = RobotsPolicy()
    agents: list[str] = []
    in_rules = False

    for raw_line in text.splitlines():
        line = raw_line.split("#", 1)[0].strip()
        if not line or ":" not in line:
            continue

        key, value = line.split(":", 1)
        key = key.strip().lower()
        value = value.strip()

        if key == "user-agent":
            # A user-agent line after rules starts a new group
            if in_rules:
                agents = []
                in_rules = False
            name = normalize_agent(value)
            agents.append(name)
            policy.groups.setdefault(name, [])
        elif key in ("allow", "disallow"):
            in_rules = True
            if not agents or not value:
                continue
            rule = RobotsRule(allow=key == "allow", path=value)
            for name in agents:
                policy.groups[name].append(rule)
        # Sitemap, Crawl-delay, Host, ... are ignored

    return policy


class RobotsCache:
    """Per-run cache of robots.txt policies, shared by all parsers.

    Each origin is fetched at most once; concurrent callers for the same
    origin wait on one fetch. Missing or unreachable robots.txt allows all.
    """

    def __init__(self, client: httpx.AsyncClient, timeout: float = ROBOTS_TIMEOUT):
        self.client = client
        self.timeout = timeout
        self._policies: dict[str, RobotsPolicy] = {}
        self._locks: dict[str, asyncio.Lock] = {}

    async def _fetch(self, origin: str) -> RobotsPolicy:
        robots_url = f"{origin}/robots.txt"
        try:
            response = await self.client.get(robots_url, timeout=self.timeout)
        except Exception as e:
            console.print(f"[dim]robots.txt unavailable for {origin} ({type(e).__name__}), allowing[/dim]")
            return ALLOW_ALL

        if response.status_code != 200:
            console.print(f"[dim]robots.txt {response.status_code} for {origin}, allowing[/dim]")
            return ALLOW_ALL

        return parse_robots_txt(response.text)

    async def policy_for(self, url: str) -> RobotsPolicy:
        parsed = urlparse(url)
        origin = f"{parsed.scheme}://{parsed.netloc}"

        if origin in self._policies:
            return self._policies[origin]

        lock = self._locks.setdefault(origin, asyncio.Lock())
        async with lock:
            if origin not in self._policies:
                self._policies[origin] = await self._fetch(origin)
        return self._policies[origin]

    async def is_allowed(self, url: str, agent: str) -> bool:
        """Whether `agent` may fetch `url` under the origin's robots.txt."""
        policy = await self.policy_for(url)
        parsed = urlparse(url)
        target = parsed.path or "/"
        if parsed.query:
            target = f"{target}?{parsed.query}"
        return policy.is_allowed(target, agent)

    def clear(self) -> None:
        self._policies.clear()
        self._locks.clear()
