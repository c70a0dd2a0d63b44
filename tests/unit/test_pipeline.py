"""Tests for batch dedup, concurrent scraping and the full ingestion run."""

import asyncio
from datetime import timedelta

import pytest
from protest_pipeline.pipeline import dedupe_events, run_ingestion, scrape_sources
from protest_pipeline.sources.registry import ScraperSource


def fake_source(source_id: str, events=None, error: Exception | None = None, seen: list | None = None) -> ScraperSource:
    async def parser(days, ctx=None):
        if seen is not None:
            seen.append((source_id, days))
        if error:
            raise error
        return list(events or [])

    return ScraperSource(id=source_id, name=source_id, country="DE", parser=parser)


class TestDedupe:
    """Tests for dedupe_events."""

    def test_identical_key_collapses(self, make_draft):
        first = make_draft(attendees=1)
        second = make_draft(title="DEMO FÜR KLIMASCHUTZ", attendees=2)
        result = dedupe_events([first, second])
        assert result == [first]

    @pytest.mark.parametrize("change", [
        {"title": "Andere Demo"},
        {"city": "Potsdam"},
        {"source": "www.dresden.de"},
        {"start": None},
    ])
    def test_any_differing_field_keeps_both(self, make_draft, change: dict):
        assert len(dedupe_events([make_draft(), make_draft(**change)])) == 2

    def test_start_offset_keeps_both(self, make_draft):
        draft = make_draft()
        later = make_draft(start=draft.start + timedelta(hours=1))
        assert len(dedupe_events([draft, later])) == 2

    def test_order_is_stable(self, make_draft):
        drafts = [make_draft(title=t) for t in ("c", "a", "b", "a")]
        assert [d.title for d in dedupe_events(drafts)] == ["c", "a", "b"]


class TestScrapeSources:
    """Tests for scrape_sources."""

    def test_failing_source_does_not_abort(self, make_draft, make_context):
        sources = [
            fake_source("ok", [make_draft()]),
            fake_source("broken", error=RuntimeError("parser bug")),
        ]

        async def run():
            ctx = make_context(lambda request: None)
            try:
                return await scrape_sources(30, sources, workers=2, ctx=ctx)
            finally:
                await ctx.client.aclose()

        events = asyncio.run(run())
        assert len(events) == 1

    def test_horizon_is_passed_to_every_parser(self, make_context):
        seen: list = []
        sources = [fake_source(f"s{i}", seen=seen) for i in range(4)]

        async def run():
            ctx = make_context(lambda request: None)
            try:
                return await scrape_sources(14, sources, workers=1, ctx=ctx)
            finally:
                await ctx.client.aclose()

        assert asyncio.run(run()) == []
        assert sorted(seen) == [("s0", 14), ("s1", 14), ("s2", 14), ("s3", 14)]


class TestRunIngestion:
    """End-to-end runs with fake sources and a temporary store."""

    def test_same_event_from_two_sources(self, store, make_draft, make_context):
        berlin = make_draft(source="www.berlin.de")
        other = make_draft(source="www.friedenskooperative.de")
        sources = [fake_source("a", [berlin]), fake_source("b", [other])]

        async def run():
            ctx = make_context(lambda request: None)
            try:
                return await run_ingestion(30, store=store, sources=sources, geocode=False, ctx=ctx)
            finally:
                await ctx.client.aclose()

        first = asyncio.run(run())
        assert (first.inserted, first.updated, first.total, first.range) == (2, 0, 2, 30)
        before = {r.id: r.to_document() for r in store.all()}

        second = asyncio.run(run())
        assert (second.inserted, second.updated, second.deleted, second.skipped) == (0, 2, 0, 0)
        assert len(store.all()) == 2
        for record in store.all():
            doc = record.to_document()
            changed = {k for k in doc if doc[k] != before[record.id][k]}
            assert changed <= {"updatedAt", "verified"}

    def test_empty_run(self, store, make_context):
        async def run():
            ctx = make_context(lambda request: None)
            try:
                return await run_ingestion(30, store=store, sources=[], ctx=ctx)
            finally:
                await ctx.client.aclose()

        summary = asyncio.run(run())
        assert summary.total == 0
        assert store.all() == []
