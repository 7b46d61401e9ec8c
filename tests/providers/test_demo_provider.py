"""
Tests for demo fixtures and DemoProvider
"""
import httpx
import pytest

from castarr.core.transport import Transport
from castarr.providers.demo import DEMO_IMDB_ID, DemoProvider, is_demo_user
from castarr.providers.imdb import IMDbClient


def make_imdb_client(handler):
    return IMDbClient(base_url="https://imdb.test", transport=Transport(transport=httpx.MockTransport(handler)))


class TestDemoUser:
    """Test cases for is_demo_user"""

    def test_matches_case_and_whitespace_insensitively(self):
        assert is_demo_user("castarrdemo@yahoo.com") is True
        assert is_demo_user("  CastarrDemo@Yahoo.com ") is True

    def test_other_emails(self):
        assert is_demo_user("someone@example.com") is False
        assert is_demo_user("") is False
        assert is_demo_user(None) is False


class TestDemoProvider:
    """Test cases for DemoProvider"""

    @pytest.mark.asyncio
    async def test_sessions_fixture(self):
        result = await DemoProvider().get_sessions()

        assert result.size == 1
        session = result.video[0]
        assert session.id == "12345"
        assert session.title == "Night of the Living Dead"
        assert session.transcode_session.progress == 45.5

    @pytest.mark.asyncio
    async def test_metadata_without_imdb(self):
        result = await DemoProvider().get_movie_metadata("12345")

        movie = result.first
        assert movie.imdb_id == DEMO_IMDB_ID
        assert movie.roles[0].tag == "Duane Jones"
        assert movie.directors[0].tag == "George A. Romero"

    @pytest.mark.asyncio
    async def test_metadata_falls_back_when_imdb_fails(self):
        """Test that an unreachable ratings service still yields the fixture"""
        provider = DemoProvider(imdb_client=make_imdb_client(lambda request: httpx.Response(503)))

        movie = (await provider.get_movie_metadata("12345")).first

        assert movie.title == "Night of the Living Dead"
        assert movie.duration == 96 * 60 * 1000

    @pytest.mark.asyncio
    async def test_metadata_enriched_from_imdb(self):
        def handler(request):
            if request.url.path.endswith("/credits"):
                return httpx.Response(200, json={"credits": [
                    {"name": {"id": "nm1", "displayName": "Duane Jones"}, "category": "actor", "characters": ["Ben"]},
                ]})
            return httpx.Response(200, json={
                "id": DEMO_IMDB_ID,
                "primaryTitle": "Night of the Living Dead",
                "runtimeSeconds": 5760,
                "rating": {"aggregateRating": 7.8},
                "genres": ["Horror"],
            })

        provider = DemoProvider(imdb_client=make_imdb_client(handler))

        movie = (await provider.get_movie_metadata("12345")).first

        assert movie.roles[0].id == "nm1"
        assert movie.roles[0].role == "Ben"
        assert [g.tag for g in movie.genres] == ["Horror"]
        assert movie.rating == 7.8

    @pytest.mark.asyncio
    async def test_capabilities_fixture(self):
        result = await DemoProvider().get_capabilities()

        assert result.friendly_name == "Demo Plex Server"
