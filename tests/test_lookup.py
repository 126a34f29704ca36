"""Tests for cached weather lookups."""

import threading
import time

import pytest
import requests

from conftest import make_response, payload_for
from weather_proxy.api.cache import WeatherCache
from weather_proxy.api.errors import InvalidInputError, NotFoundError, RateLimitError, UpstreamError
from weather_proxy.api.lookup import WeatherLookupCache, normalize_city_key, normalize_coordinates
from weather_proxy.api.weather_client import WeatherClient


class TestCityLookup:
    def test_second_lookup_is_served_from_cache(self, lookups, session):
        first = lookups.lookup("London")
        second = lookups.lookup("LONDON")

        assert first.from_cache is False
        assert second.from_cache is True
        assert session.get.call_count == 1
        assert second.main.temp == first.main.temp

    def test_key_ignores_surrounding_whitespace(self, lookups, session):
        lookups.lookup("London")
        assert lookups.lookup("  london ").from_cache is True
        assert session.get.call_count == 1

    def test_raw_city_name_sent_upstream(self, lookups, session):
        lookups.lookup("New York")
        assert session.get.call_args.kwargs["params"]["q"] == "New York"

    def test_cached_value_is_not_mutated_by_tagging(self, lookups, cache):
        lookups.lookup("London")
        lookups.lookup("London")
        assert cache.peek("london").from_cache is False

    def test_refetches_after_ttl(self, lookups, session, clock):
        lookups.lookup("London")
        clock.advance(600)

        third = lookups.lookup("london")

        assert third.from_cache is False
        assert session.get.call_count == 2

    def test_still_cached_just_before_ttl(self, lookups, session, clock):
        lookups.lookup("London")
        clock.advance(599)
        assert lookups.lookup("London").from_cache is True
        assert session.get.call_count == 1

    def test_london_fields(self, lookups):
        weather = lookups.lookup("london")
        assert weather.main.temp == 15
        assert weather.main.feels_like == 14
        assert weather.main.temp_min == 13
        assert weather.main.temp_max == 17
        assert weather.is_day == "day"

    @pytest.mark.parametrize("bad", ["", "   ", "\t\n", None, 42])
    def test_invalid_city(self, lookups, session, bad):
        with pytest.raises(InvalidInputError) as exc_info:
            lookups.lookup(bad)

        assert exc_info.value.status_code == 400
        session.get.assert_not_called()

    def test_errors_are_not_cached(self, lookups, session, cache):
        session.get.return_value = make_response(400, {"error": {"message": "No matching location found."}})

        with pytest.raises(UpstreamError) as exc_info:
            lookups.lookup("Atlantis")

        assert exc_info.value.message == "No matching location found."
        assert "atlantis" not in cache
        assert len(cache) == 0

        # A retry goes upstream again
        with pytest.raises(UpstreamError):
            lookups.lookup("Atlantis")
        assert session.get.call_count == 2

    def test_not_found_surfaces_distinctly(self, lookups, session):
        session.get.return_value = make_response(
            400, {"error": {"code": 1006, "message": "No matching location found."}}
        )
        with pytest.raises(NotFoundError):
            lookups.lookup("Atlantis")

    def test_eviction_bounds_cache(self, client, clock, session):
        cache = WeatherCache(ttl=600, max_entries=3, clock=clock)
        lookups = WeatherLookupCache(client, cache)
        cities = ["London", "Paris", "Rome", "Oslo", "Lima"]

        for city in cities:
            session.get.return_value = make_response(200, payload_for(city))
            lookups.lookup(city)
            clock.advance(1)
            assert len(cache) <= 3

        assert "london" not in cache
        assert "paris" not in cache
        assert lookups.lookup("Lima").from_cache is True
        assert lookups.lookup("London").from_cache is False

    def test_cache_hits_do_not_use_rate_limit(self, settings, session, cache, clock):
        limited = settings.model_copy(update={"rate_limit_max_requests": 1})
        lookups = WeatherLookupCache(WeatherClient(settings=limited, session=session, clock=clock), cache)

        assert lookups.lookup("London").from_cache is False
        assert lookups.lookup("London").from_cache is True
        assert lookups.lookup("london").from_cache is True

        with pytest.raises(RateLimitError):
            lookups.lookup("Paris")
        assert session.get.call_count == 1


class TestCoordinateLookup:
    def test_coordinates_query_and_cache(self, lookups, session):
        first = lookups.lookup_coordinates(51.5, -0.13)
        second = lookups.lookup_coordinates("51.50001", "-0.13")

        assert session.get.call_args.kwargs["params"]["q"] == "51.5,-0.13"
        assert first.from_cache is False
        assert second.from_cache is True
        assert session.get.call_count == 1

    @pytest.mark.parametrize("lat, lon", [
        (None, 0),
        (0, None),
        ("", ""),
        ("north", 0),
        (91, 0),
        (0, -181),
        (float("nan"), 0),
        (True, 0),
    ])
    def test_invalid_coordinates(self, lookups, session, lat, lon):
        with pytest.raises(InvalidInputError):
            lookups.lookup_coordinates(lat, lon)
        session.get.assert_not_called()

    def test_normalize_coordinates_accepts_strings(self):
        assert normalize_coordinates("37.7749", "-122.4194") == (37.7749, -122.4194)


class TestConcurrency:
    def test_concurrent_misses_collapse_to_one_upstream_call(self, settings, london_payload):
        calls = []
        release = threading.Event()

        class SlowSession:
            def get(self, url, params=None, timeout=None):
                calls.append(params["q"])
                release.wait(timeout=5)
                return make_response(200, london_payload)

            def close(self):
                pass

        lookups = WeatherLookupCache(
            WeatherClient(settings=settings, session=SlowSession()),
            WeatherCache(ttl=600, max_entries=10),
        )
        results = []

        def worker():
            results.append(lookups.lookup("London"))

        threads = [threading.Thread(target=worker) for _ in range(5)]
        for t in threads:
            t.start()
        time.sleep(0.1)
        release.set()
        for t in threads:
            t.join(timeout=5)

        assert len(calls) == 1
        assert len(results) == 5
        assert sum(1 for r in results if not r.from_cache) == 1
        assert lookups._inflight == {}

        stats = lookups.cache_stats()
        assert stats["hits"] == 4
        assert stats["misses"] == 1

    def test_waiters_fetch_themselves_when_first_fetch_fails(self, settings, london_payload):
        calls = []
        release = threading.Event()

        class FlakySession:
            def get(self, url, params=None, timeout=None):
                calls.append(params["q"])
                if len(calls) == 1:
                    release.wait(timeout=5)
                    raise requests.ConnectionError("connection reset")
                return make_response(200, london_payload)

            def close(self):
                pass

        lookups = WeatherLookupCache(
            WeatherClient(settings=settings, session=FlakySession()),
            WeatherCache(ttl=600, max_entries=10),
        )
        results = []
        errors = []

        def worker():
            try:
                results.append(lookups.lookup("London"))
            except UpstreamError as e:
                errors.append(e)

        threads = [threading.Thread(target=worker) for _ in range(3)]
        for t in threads:
            t.start()
        time.sleep(0.1)
        release.set()
        for t in threads:
            t.join(timeout=5)

        assert len(errors) == 1
        assert len(calls) == 2
        assert sorted(r.from_cache for r in results) == [False, True]
        assert lookups._inflight == {}

        stats = lookups.cache_stats()
        assert stats["hits"] == 1
        assert stats["misses"] == 2

    def test_different_keys_do_not_block_each_other(self, settings, london_payload):
        london_started = threading.Event()
        release = threading.Event()

        class SelectiveSession:
            def get(self, url, params=None, timeout=None):
                if params["q"] == "London":
                    london_started.set()
                    release.wait(timeout=5)
                    return make_response(200, london_payload)
                return make_response(200, payload_for(params["q"]))

            def close(self):
                pass

        lookups = WeatherLookupCache(
            WeatherClient(settings=settings, session=SelectiveSession()),
            WeatherCache(ttl=600, max_entries=10),
        )
        london_done = threading.Event()

        def fetch_london():
            lookups.lookup("London")
            london_done.set()

        london = threading.Thread(target=fetch_london)
        london.start()
        assert london_started.wait(timeout=5)

        paris = lookups.lookup("Paris")

        assert paris.city == "Paris"
        assert not london_done.is_set()

        release.set()
        london.join(timeout=5)
        assert london_done.is_set()


class TestHousekeeping:
    def test_stats_and_clear(self, lookups):
        lookups.lookup("London")
        lookups.lookup("London")

        stats = lookups.cache_stats()
        assert stats["entries"] == 1
        assert stats["hits"] == 1
        assert stats["misses"] == 1

        assert lookups.clear_cache() == 1
        assert lookups.lookup("London").from_cache is False

    def test_from_settings(self, settings):
        lookups = WeatherLookupCache.from_settings(settings)
        assert lookups.cache.ttl == 600
        assert lookups.cache.max_entries == 100
        assert lookups.client.base_url == "https://weather.test/v1"
        lookups.close()

    def test_normalize_city_key(self):
        assert normalize_city_key("  San Francisco ") == "san francisco"
