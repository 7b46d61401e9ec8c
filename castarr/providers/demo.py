"""
Demo data source: the same contracts as the live provider, backed by fixtures
so the app can be explored without a Plex account.
"""
import logging
from typing import List, Optional
from urllib.parse import quote

from .base import BaseProvider
from .imdb import IMDbClient
from ..core.exceptions import PlexError
from ..schemas.imdb import IMDbCredit, IMDbTitle
from ..schemas.metadata import (
    MovieCountry,
    MovieDirector,
    MovieGenre,
    MovieGuid,
    MovieMetadata,
    MovieMetadataContainer,
    MovieRating,
    MovieRole,
    MovieTechnicalInfo,
    MovieWriter,
    UltraBlurColors,
)
from ..schemas.server import ActivitiesContainer, ServerCapabilities
from ..schemas.session import SessionPlayer, SessionsContainer, SessionUser, TranscodeSession, VideoSession

logger = logging.getLogger(__name__)

DEMO_EMAIL = "castarrdemo@yahoo.com"
DEMO_TOKEN = "demo-token-12345"
DEMO_SERVER_IP = "192.168.1.100"
DEMO_IMDB_ID = "tt0063350"

DEFAULT_SUMMARY = (
    "When reports spread of the recently dead rising in rural Pennsylvania, strangers seek shelter "
    "inside a farmhouse. As the night wears on, the survivors fight off the encroaching ghouls while "
    "grappling with their own fear, mistrust, and dwindling options."
)


def is_demo_user(email: Optional[str]) -> bool:
    if not email:
        return False
    return email.strip().lower() == DEMO_EMAIL.lower()


def placeholder_image_url(text: str, width: int = 400, height: int = 400) -> str:
    return f"https://placehold.co/{width}x{height}?text={quote(text)}"


def _default_roles() -> List[MovieRole]:
    cast = [
        ("nm0429012", "Duane Jones", "Ben"),
        ("nm0640861", "Judith O'Dea", "Barbra"),
        ("nm0362208", "Karl Hardman", "Harry Cooper"),
        ("nm0247504", "Marilyn Eastman", "Helen Cooper"),
        ("nm0907750", "Keith Wayne", "Tom"),
        ("nm0725998", "Judith Ridley", "Judy"),
        ("nm0775032", "Kyra Schon", "Karen Cooper"),
        ("nm0834359", "Russell Streiner", "Johnny"),
        ("nm0385719", "Bill Hinzman", "Cemetery Zombie"),
        ("nm0185849", "Charles Craig", "Newscaster"),
    ]
    return [MovieRole(id=i, tag=name, role=role, thumb=placeholder_image_url(name)) for i, name, role in cast]


def _roles_from_credits(credits: List[IMDbCredit]) -> List[MovieRole]:
    roles = []
    for credit in credits:
        if credit.name is None:
            continue
        name = credit.name
        thumb = name.primary_image.url if name.primary_image and name.primary_image.url else None
        roles.append(MovieRole(
            id=name.id,
            tag=name.display_name,
            role=credit.characters[0] if credit.characters else None,
            thumb=thumb or placeholder_image_url(name.display_name),
        ))
    return roles


def _year_from(release_date: Optional[str]) -> Optional[int]:
    if not release_date:
        return None
    try:
        return int(release_date[:4])
    except ValueError:
        return None


def create_mock_sessions() -> SessionsContainer:
    user = SessionUser(id=1, title="Demo User", uuid="demo-user-uuid", email=DEMO_EMAIL)
    player = SessionPlayer(
        address=DEMO_SERVER_IP,
        device="Apple TV",
        platform="tvOS",
        product="Plex for Apple TV",
        state="playing",
        title="Living Room",
        version="8.0",
    )
    transcode = TranscodeSession(
        key="/transcode/sessions/mock123",
        progress=45.5,
        speed=1.2,
        duration=7_800_000,
        video_decision="transcode",
        audio_decision="directplay",
        container="mkv",
        video_codec="h264",
        audio_codec="aac",
    )
    session = VideoSession(
        id="12345",
        session_key="mock-session-1",
        title="Night of the Living Dead",
        year=1968,
        duration=5_760_000,
        view_offset=2_520_000,
        user=user,
        player=player,
        transcode_session=transcode,
    )
    return SessionsContainer(size=1, video=[session])


def create_mock_capabilities() -> ServerCapabilities:
    return ServerCapabilities(
        size=0,
        allow_camera_upload=True,
        allow_channel_access=True,
        allow_media_deletion=False,
        allow_sharing=True,
        allow_sync=True,
        allow_tuners=False,
        background_processing=True,
        certificate=True,
        companion_proxy=True,
        friendly_name="Demo Plex Server",
        version="1.32.5.7349",
        platform="Linux",
        platform_version="4.4.0",
        machine_identifier="demo-server-123",
        my_plex=True,
        my_plex_username="Demo User",
        my_plex_signin_state="ok",
        my_plex_subscription=True,
        multiuser=True,
        transcoder_audio=True,
        transcoder_video=True,
        transcoder_subtitles=True,
        transcoder_photo=True,
        transcoder_active_video_sessions=1,
        transcoder_video_resolutions="1080p,720p,480p",
        transcoder_video_bitrates="20000,10000,4000,2000",
        transcoder_video_qualities="100,80,60,40",
        livetv=0,
        photo_auto_tag=True,
        voice_search=True,
        push_notifications=True,
    )


def create_mock_activities() -> ActivitiesContainer:
    return ActivitiesContainer(size=0, activity=[])


def build_mock_movie(details: Optional[IMDbTitle] = None, credits: Optional[List[IMDbCredit]] = None) -> MovieMetadata:
    """Fixture movie, enriched with IMDb details when they are available"""
    poster = (details.poster_url if details else None) or placeholder_image_url(
        "Night of the Living Dead", width=720, height=1080
    )
    runtime_minutes = (details.runtime_minutes if details else None) or 96
    vote_average = details.vote_average if details else None
    roles = _roles_from_credits(credits or [])
    genre_names = (details.genres if details else None) or ["Horror", "Thriller", "Science Fiction"]
    country_names = [c.name for c in details.origin_countries if c.name] if details else []
    country_names = country_names or ["United States of America"]

    return MovieMetadata(
        id="12345",
        title=(details.title if details else None) or "Night of the Living Dead",
        year=(details.start_year if details else None) or _year_from("1968-10-01"),
        studio="Image Ten",
        summary=(details.plot if details else None) or DEFAULT_SUMMARY,
        rating=vote_average or 7.8,
        audience_rating=vote_average or 7.6,
        audience_rating_image="rottentomatoes://image.rating.upright",
        content_rating="NR",
        duration=runtime_minutes * 60 * 1000,
        tagline="They won't stay dead.",
        thumb=poster,
        art=poster,
        originally_available_at="1968-10-01",
        guid=f"imdb://{DEMO_IMDB_ID}",
        roles=roles or _default_roles(),
        directors=[MovieDirector(id="nm0001681", tag="George A. Romero",
                                 thumb=placeholder_image_url("George A. Romero"))],
        writers=[
            MovieWriter(id="nm0750988", tag="John A. Russo", thumb=placeholder_image_url("John A. Russo")),
            MovieWriter(id="nm0001681", tag="George A. Romero", thumb=placeholder_image_url("George A. Romero")),
        ],
        genres=[MovieGenre(id=str(i + 1), tag=name) for i, name in enumerate(genre_names)],
        countries=[MovieCountry(id=str(i + 1), tag=name) for i, name in enumerate(country_names)],
        ratings=[
            MovieRating(id="imdb", image="imdb://image.rating", type="audience", value=7.8, count=320000),
            MovieRating(id="tmdb", image="themoviedb://image.rating", type="audience", value=7.6, count=11000),
        ],
        guids=[MovieGuid(id=f"imdb://{DEMO_IMDB_ID}"), MovieGuid(id="tmdb://10331"), MovieGuid(id="tvdb://191")],
        ultra_blur_colors=UltraBlurColors(
            top_left="#2b3034",
            top_right="#3e464b",
            bottom_left="#070809",
            bottom_right="#1a1d1f",
        ),
        technical=MovieTechnicalInfo(
            video_resolution="1080",
            video_codec="H.264",
            video_frame_rate="24.000",
            aspect_ratio="1.37",
            audio_codec="AAC",
            audio_channels=2,
            audio_profile="lc",
            container="mp4",
            bitrate=6_500_000,
            file_size=2_050_000_000,
        ),
    )


class DemoProvider(BaseProvider):

    def __init__(self, imdb_client: Optional[IMDbClient] = None):
        self.imdb_client = imdb_client
        self._movie: Optional[MovieMetadata] = None

    async def get_capabilities(self) -> ServerCapabilities:
        return create_mock_capabilities()

    async def get_activities(self) -> ActivitiesContainer:
        return create_mock_activities()

    async def get_sessions(self) -> SessionsContainer:
        return create_mock_sessions()

    async def get_movie_metadata(self, rating_key: str) -> MovieMetadataContainer:
        if self._movie is None:
            self._movie = await self._build_movie()
        return MovieMetadataContainer(size=1, video=[self._movie])

    async def _build_movie(self) -> MovieMetadata:
        if self.imdb_client is None:
            return build_mock_movie()

        details, credits = None, []
        try:
            details = await self.imdb_client.get_movie_details(DEMO_IMDB_ID)
            credits = await self.imdb_client.get_movie_cast(DEMO_IMDB_ID, limit=12)
        except PlexError as e:
            logger.warning(f"IMDb enrichment for demo metadata failed, using built-in values: {e}")
        return build_mock_movie(details, credits)
