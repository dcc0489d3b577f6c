"""Tests for the catalog and library API clients."""

import json

import pytest
import respx
from httpx import Response

from reelarr.clients.base import CatalogError, CatalogRateLimitError
from reelarr.clients.brave import BraveSearchClient, extract_imdb_id
from reelarr.clients.omdb import OmdbClient
from reelarr.clients.sonarr import SonarrClient
from reelarr.clients.tmdb import TmdbClient
from reelarr.clients.tvdb import TvdbClient
from reelarr.models.common import MediaKind

TMDB = "https://api.themoviedb.org/3"
TVDB = "https://api4.thetvdb.com/v4"
OMDB = "https://www.omdbapi.com/"
BRAVE = "https://api.search.brave.com/res/v1/web/search"


class TestTmdbClient:
    """Tests for TmdbClient."""

    @respx.mock
    @pytest.mark.asyncio
    async def test_get_movie(self) -> None:
        """Movie details should map title, year and IMDB ID."""
        route = respx.get(f"{TMDB}/movie/603").mock(
            return_value=Response(
                200,
                json={
                    "id": 603,
                    "title": "The Matrix",
                    "original_title": "The Matrix",
                    "release_date": "1999-03-30",
                    "original_language": "en",
                    "imdb_id": "tt0133093",
                    "popularity": 50.5,
                },
            )
        )

        async with TmdbClient("tmdb-key") as client:
            title = await client.get_title(603, MediaKind.MOVIE)

        assert title is not None
        assert title.title == "The Matrix"
        assert title.year == 1999
        assert title.imdb_id == "tt0133093"
        params = route.calls.last.request.url.params
        assert params["api_key"] == "tmdb-key"
        assert params["append_to_response"] == "external_ids"

    @respx.mock
    @pytest.mark.asyncio
    async def test_get_tv_external_ids(self) -> None:
        """TV details should read name, first air date and external IDs."""
        respx.get(f"{TMDB}/tv/1399").mock(
            return_value=Response(
                200,
                json={
                    "id": 1399,
                    "name": "Game of Thrones",
                    "first_air_date": "2011-04-17",
                    "external_ids": {"imdb_id": "tt0944947", "tvdb_id": 121361},
                },
            )
        )

        async with TmdbClient("tmdb-key") as client:
            title = await client.get_title(1399, MediaKind.TV)

        assert title is not None
        assert title.title == "Game of Thrones"
        assert title.year == 2011
        assert title.imdb_id == "tt0944947"
        assert title.tvdb_id == 121361

    @respx.mock
    @pytest.mark.asyncio
    async def test_get_title_not_found(self) -> None:
        """A 404 should return None."""
        respx.get(f"{TMDB}/movie/1").mock(return_value=Response(404))

        async with TmdbClient("tmdb-key") as client:
            assert await client.get_title(1, MediaKind.MOVIE) is None

    @respx.mock
    @pytest.mark.asyncio
    async def test_search_tv_with_year(self) -> None:
        """TV searches should filter on first_air_date_year."""
        route = respx.get(f"{TMDB}/search/tv").mock(
            return_value=Response(
                200,
                json={
                    "results": [
                        {"id": 1, "name": "Show", "first_air_date": "2020-01-01"},
                        {"id": 2, "name": "Show (2)", "first_air_date": ""},
                    ]
                },
            )
        )

        async with TmdbClient("tmdb-key") as client:
            results = await client.search("Show", MediaKind.TV, 2020)

        assert [r.id for r in results] == [1, 2]
        assert results[1].year is None
        params = route.calls.last.request.url.params
        assert params["query"] == "Show"
        assert params["first_air_date_year"] == "2020"

    @respx.mock
    @pytest.mark.asyncio
    async def test_search_movie_with_year(self) -> None:
        """Movie searches should filter on year."""
        route = respx.get(f"{TMDB}/search/movie").mock(
            return_value=Response(200, json={"results": []})
        )

        async with TmdbClient("tmdb-key") as client:
            assert await client.search("Dune", MediaKind.MOVIE, 2021) == []

        assert route.calls.last.request.url.params["year"] == "2021"

    @respx.mock
    @pytest.mark.asyncio
    async def test_find_by_imdb_id(self) -> None:
        """Find should read the bucket matching the kind."""
        respx.get(f"{TMDB}/find/tt0133093").mock(
            return_value=Response(
                200,
                json={
                    "movie_results": [{"id": 603, "title": "The Matrix", "release_date": "1999-03-30"}],
                    "tv_results": [],
                },
            )
        )

        async with TmdbClient("tmdb-key") as client:
            movie = await client.find_by_imdb_id("tt0133093", MediaKind.MOVIE)
            show = await client.find_by_imdb_id("tt0133093", MediaKind.TV)

        assert movie is not None and movie.id == 603
        assert show is None

    @respx.mock
    @pytest.mark.asyncio
    async def test_search_hit_without_id(self) -> None:
        """A search hit missing its id should raise CatalogError, not KeyError."""
        respx.get(f"{TMDB}/search/movie").mock(
            return_value=Response(200, json={"results": [{"title": "Movie"}]})
        )

        async with TmdbClient("tmdb-key") as client:
            with pytest.raises(CatalogError, match="malformed"):
                await client.search("Movie", MediaKind.MOVIE)

    @respx.mock
    @pytest.mark.asyncio
    async def test_unexpected_body_shape(self) -> None:
        """A list where an object was expected should raise CatalogError."""
        respx.get(f"{TMDB}/search/tv").mock(return_value=Response(200, json=["unexpected"]))
        respx.get(f"{TMDB}/find/tt0133093").mock(
            return_value=Response(200, json={"movie_results": {"id": 603}})
        )

        async with TmdbClient("tmdb-key") as client:
            with pytest.raises(CatalogError, match="malformed"):
                await client.search("Show", MediaKind.TV)
            with pytest.raises(CatalogError, match="malformed"):
                await client.find_by_imdb_id("tt0133093", MediaKind.MOVIE)


class TestTvdbClient:
    """Tests for TvdbClient."""

    @respx.mock
    @pytest.mark.asyncio
    async def test_login_once_then_search(self) -> None:
        """The token should be fetched once and sent as a bearer header."""
        login = respx.post(f"{TVDB}/login").mock(
            return_value=Response(200, json={"data": {"token": "tok"}})
        )
        search = respx.get(f"{TVDB}/search").mock(
            return_value=Response(
                200,
                json={
                    "data": [
                        {
                            "id": "series-121361",
                            "tvdb_id": "121361",
                            "name": "Game of Thrones",
                            "year": "2011",
                            "remote_ids": [
                                {"id": "tt0944947", "sourceName": "IMDB"},
                                {"id": "1399", "sourceName": "TheMovieDB.com"},
                            ],
                        },
                        {"name": "No Id"},
                    ]
                },
            )
        )

        async with TvdbClient("tvdb-key") as client:
            first = await client.search_series("Game of Thrones")
            await client.search_series("House of the Dragon", 2022)

        assert login.call_count == 1
        assert json.loads(login.calls.last.request.content) == {"apikey": "tvdb-key"}
        assert search.calls.last.request.headers["Authorization"] == "Bearer tok"
        assert search.calls.last.request.url.params["year"] == "2022"
        assert len(first) == 1
        series = first[0]
        assert series.id == 121361
        assert series.year == 2011
        assert series.remote_ids.tmdb_id == 1399
        assert series.remote_ids.imdb_id == "tt0944947"

    @respx.mock
    @pytest.mark.asyncio
    async def test_login_sends_pin(self) -> None:
        """A subscriber PIN should be included in the login body."""
        login = respx.post(f"{TVDB}/login").mock(
            return_value=Response(200, json={"data": {"token": "tok"}})
        )
        respx.get(f"{TVDB}/search").mock(return_value=Response(200, json={"data": []}))

        async with TvdbClient("tvdb-key", pin="1234") as client:
            assert await client.search_series("Show") == []

        assert json.loads(login.calls.last.request.content)["pin"] == "1234"

    @respx.mock
    @pytest.mark.asyncio
    async def test_login_without_token(self) -> None:
        """A login response without a token should raise CatalogError."""
        respx.post(f"{TVDB}/login").mock(return_value=Response(200, json={"data": {}}))

        async with TvdbClient("tvdb-key") as client:
            with pytest.raises(CatalogError, match="no token"):
                await client.search_series("Show")

    @respx.mock
    @pytest.mark.asyncio
    async def test_series_extended(self) -> None:
        """Extended records should map remoteIds."""
        respx.post(f"{TVDB}/login").mock(
            return_value=Response(200, json={"data": {"token": "tok"}})
        )
        respx.get(f"{TVDB}/series/121361/extended").mock(
            return_value=Response(
                200,
                json={
                    "data": {
                        "id": 121361,
                        "name": "Game of Thrones",
                        "firstAired": "2011-04-17",
                        "remoteIds": [
                            {"id": 1399, "sourceName": "TheMovieDB.com", "type": 12},
                            {"id": "tt0944947", "sourceName": "IMDB", "type": 2},
                        ],
                    }
                },
            )
        )

        async with TvdbClient("tvdb-key") as client:
            series = await client.get_series_extended(121361)

        assert series is not None
        assert series.year == 2011
        assert series.remote_ids.tmdb_id == 1399
        assert series.remote_ids.imdb_id == "tt0944947"

    @respx.mock
    @pytest.mark.asyncio
    async def test_series_extended_missing(self) -> None:
        """A 404 for the extended record should return None."""
        respx.post(f"{TVDB}/login").mock(
            return_value=Response(200, json={"data": {"token": "tok"}})
        )
        respx.get(f"{TVDB}/series/1/extended").mock(return_value=Response(404))

        async with TvdbClient("tvdb-key") as client:
            assert await client.get_series_extended(1) is None

    @respx.mock
    @pytest.mark.asyncio
    async def test_search_skips_unparseable_hit(self) -> None:
        """A hit with a non-numeric id is skipped; the rest are kept."""
        respx.post(f"{TVDB}/login").mock(
            return_value=Response(200, json={"data": {"token": "tok"}})
        )
        respx.get(f"{TVDB}/search").mock(
            return_value=Response(
                200,
                json={
                    "data": [
                        {"tvdb_id": "abc", "name": "Broken"},
                        {"tvdb_id": "5", "name": "Fine", "score": "high"},
                        {"tvdb_id": "6", "name": "Good"},
                    ]
                },
            )
        )

        async with TvdbClient("tvdb-key") as client:
            results = await client.search_series("Good")

        assert [series.id for series in results] == [6]

    @respx.mock
    @pytest.mark.asyncio
    async def test_series_extended_not_an_object(self) -> None:
        """An extended record that is not an object should raise CatalogError."""
        respx.post(f"{TVDB}/login").mock(
            return_value=Response(200, json={"data": {"token": "tok"}})
        )
        respx.get(f"{TVDB}/series/1/extended").mock(
            return_value=Response(200, json={"data": "oops"})
        )

        async with TvdbClient("tvdb-key") as client:
            with pytest.raises(CatalogError, match="malformed"):
                await client.get_series_extended(1)

    @respx.mock
    @pytest.mark.asyncio
    async def test_login_body_not_an_object(self) -> None:
        """A login answer of the wrong shape should raise CatalogError."""
        respx.post(f"{TVDB}/login").mock(return_value=Response(200, json=["token"]))

        async with TvdbClient("tvdb-key") as client:
            with pytest.raises(CatalogError, match="malformed"):
                await client.search_series("Show")


class TestOmdbClient:
    """Tests for OmdbClient."""

    @respx.mock
    @pytest.mark.asyncio
    async def test_found(self) -> None:
        """A successful lookup should return the IMDB ID."""
        route = respx.get(OMDB).mock(
            return_value=Response(200, json={"Response": "True", "imdbID": "tt0944947"})
        )

        async with OmdbClient("omdb-key", min_request_interval=0) as client:
            imdb_id = await client.find_imdb_id("Game of Thrones", MediaKind.TV, 2011)

        assert imdb_id == "tt0944947"
        params = route.calls.last.request.url.params
        assert params["apikey"] == "omdb-key"
        assert params["t"] == "Game of Thrones"
        assert params["type"] == "series"
        assert params["y"] == "2011"

    @respx.mock
    @pytest.mark.asyncio
    async def test_not_found(self) -> None:
        """An OMDB miss should return None."""
        respx.get(OMDB).mock(
            return_value=Response(200, json={"Response": "False", "Error": "Movie not found!"})
        )

        async with OmdbClient("omdb-key", min_request_interval=0) as client:
            assert await client.find_imdb_id("Nothing", MediaKind.MOVIE) is None

    @respx.mock
    @pytest.mark.asyncio
    async def test_limit_in_body(self) -> None:
        """A limit error in a 200 body should raise CatalogRateLimitError."""
        respx.get(OMDB).mock(
            return_value=Response(200, json={"Response": "False", "Error": "Request limit reached!"})
        )

        async with OmdbClient("omdb-key", min_request_interval=0) as client:
            with pytest.raises(CatalogRateLimitError):
                await client.find_imdb_id("Anything", MediaKind.MOVIE)

    @respx.mock
    @pytest.mark.asyncio
    async def test_unexpected_body_shape(self) -> None:
        """A body that is not an object should raise CatalogError."""
        respx.get(OMDB).mock(return_value=Response(200, json=["unexpected"]))

        async with OmdbClient("omdb-key", min_request_interval=0) as client:
            with pytest.raises(CatalogError, match="malformed"):
                await client.find_imdb_id("Anything", MediaKind.MOVIE)


class TestBraveSearchClient:
    """Tests for BraveSearchClient."""

    @respx.mock
    @pytest.mark.asyncio
    async def test_find_imdb_id(self) -> None:
        """The first IMDB title URL in the results should win."""
        route = respx.get(BRAVE).mock(
            return_value=Response(
                200,
                json={
                    "web": {
                        "results": [
                            {"title": "Wiki", "url": "https://en.wikipedia.org/wiki/Azad"},
                            {"title": "IMDb", "url": "https://www.imdb.com/title/tt1234567/"},
                        ]
                    }
                },
            )
        )

        async with BraveSearchClient("brave-key", min_request_interval=0) as client:
            imdb_id = await client.find_imdb_id("Azad", 2025)

        assert imdb_id == "tt1234567"
        request = route.calls.last.request
        assert request.headers["X-Subscription-Token"] == "brave-key"
        assert request.url.params["q"] == '"Azad" 2025 site:imdb.com'

    @respx.mock
    @pytest.mark.asyncio
    async def test_no_imdb_url(self) -> None:
        """Results without IMDB URLs should return None."""
        respx.get(BRAVE).mock(return_value=Response(200, json={"web": {"results": []}}))

        async with BraveSearchClient("brave-key", min_request_interval=0) as client:
            assert await client.find_imdb_id("Azad") is None

    @respx.mock
    @pytest.mark.asyncio
    async def test_rate_limited(self) -> None:
        """HTTP 429 should raise CatalogRateLimitError."""
        respx.get(BRAVE).mock(return_value=Response(429))

        async with BraveSearchClient("brave-key", min_request_interval=0) as client:
            with pytest.raises(CatalogRateLimitError):
                await client.find_imdb_id("Azad")

    def test_extract_imdb_id(self) -> None:
        """IDs should be pulled only from IMDB title URLs."""
        assert extract_imdb_id("https://m.imdb.com/title/tt0133093/?ref_=x") == "tt0133093"
        assert extract_imdb_id("https://www.imdb.com/name/nm0000206/") is None

    @respx.mock
    @pytest.mark.asyncio
    async def test_unexpected_body_shape(self) -> None:
        """A body that is not an object should raise CatalogError."""
        respx.get(BRAVE).mock(return_value=Response(200, json=["unexpected"]))

        async with BraveSearchClient("brave-key", min_request_interval=0) as client:
            with pytest.raises(CatalogError, match="malformed"):
                await client.find_imdb_id("Azad")


class TestSonarrClient:
    """Tests for SonarrClient."""

    @respx.mock
    @pytest.mark.asyncio
    async def test_find_series_and_files(self) -> None:
        """Series lookup should match the TVDB ID and list episode files."""
        series_route = respx.get("http://sonarr:8989/api/v3/series").mock(
            return_value=Response(
                200,
                json=[
                    {
                        "id": 7,
                        "title": "Game of Thrones",
                        "tvdbId": 121361,
                        "originalLanguage": {"id": 1, "name": "English"},
                    }
                ],
            )
        )
        respx.get("http://sonarr:8989/api/v3/episodefile").mock(
            return_value=Response(
                200,
                json=[
                    {"id": 1, "seriesId": 7, "seasonNumber": 1, "relativePath": "a.mkv", "size": 10},
                ],
            )
        )

        async with SonarrClient("http://sonarr:8989", "sonarr-key") as client:
            series = await client.find_series_by_tvdb_id(121361)
            assert series is not None
            files = await client.get_episode_files(series.id)
            missing = await client.find_series_by_tvdb_id(1)

        request = series_route.calls.last.request
        assert request.headers["X-Api-Key"] == "sonarr-key"
        assert series.original_language is not None
        assert series.original_language.name == "English"
        assert files[0].season_number == 1
        assert missing is None

    @respx.mock
    @pytest.mark.asyncio
    async def test_unexpected_body_shape(self) -> None:
        """An object where a list was expected should raise CatalogError."""
        respx.get("http://sonarr:8989/api/v3/series").mock(
            return_value=Response(200, json={"records": []})
        )

        async with SonarrClient("http://sonarr:8989", "sonarr-key") as client:
            with pytest.raises(CatalogError, match="malformed"):
                await client.find_series_by_tvdb_id(121361)
