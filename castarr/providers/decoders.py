"""
Decoders for Plex Media Server payloads.

Plex answers with attribute-heavy XML in which almost every attribute is
optional. Documents are consumed as a stream of start/end events: each
element opens an accumulator of optional slots which is frozen into an
immutable record when the element closes.
"""
import logging
import xml.etree.ElementTree as ET
from typing import Any, Dict, Iterable, List, Optional, Tuple, Union

from pydantic import ValidationError as PydanticValidationError

from ..core.exceptions import DecodeError
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
from ..schemas.server import ActivitiesContainer, Activity, ActivityContext, ServerCapabilities
from ..schemas.session import (
    SessionPlayer,
    SessionsContainer,
    SessionUser,
    TrackSession,
    TranscodeSession,
    VideoSession,
)

logger = logging.getLogger(__name__)

Payload = Union[bytes, str]


def _int(attrs: Dict[str, str], key: str, default: Optional[int] = None) -> Optional[int]:
    value = attrs.get(key)
    if value is None or value == "":
        return default
    try:
        return int(value)
    except ValueError:
        try:
            return int(float(value))
        except (ValueError, OverflowError):
            return default


def _float(attrs: Dict[str, str], key: str, default: Optional[float] = None) -> Optional[float]:
    value = attrs.get(key)
    if value is None or value == "":
        return default
    try:
        return float(value)
    except ValueError:
        return default


def _iter_events(data: Payload) -> Iterable[Tuple[str, ET.Element]]:
    """Yield (event, element) pairs; malformed markup raises DecodeError"""
    if isinstance(data, str):
        data = data.encode("utf-8")
    if not data or not data.strip():
        raise DecodeError("Empty response from server")

    parser = ET.XMLPullParser(events=("start", "end"))
    try:
        parser.feed(data)
        for event in parser.read_events():
            yield event
        parser.close()
        for event in parser.read_events():
            yield event
    except ET.ParseError as e:
        logger.error(f"XML parsing failed: {e}")
        raise DecodeError() from e


class TechnicalAccumulator:
    """Collects technical fields across Video/Media/Part elements, last value wins"""

    def __init__(self):
        self.slots: Dict[str, Any] = {}
        self.touched = False

    def merge_video(self, attrs: Dict[str, str]) -> None:
        mapping = {
            "video_resolution": attrs.get("videoResolution"),
            "video_codec": attrs.get("videoCodec"),
            "video_frame_rate": attrs.get("videoFrameRate"),
            "aspect_ratio": attrs.get("aspectRatio"),
            "audio_codec": attrs.get("audioCodec"),
            "audio_channels": _int(attrs, "audioChannels"),
            "audio_profile": attrs.get("audioProfile"),
            "container": attrs.get("container"),
            "bitrate": _int(attrs, "bitrate"),
            "file_size": _int(attrs, "size"),
        }
        for key, value in mapping.items():
            if value is not None:
                self.slots[key] = value

    def merge_media(self, attrs: Dict[str, str]) -> None:
        self.touched = True
        resolution = attrs.get("videoResolution") or attrs.get("height")
        if resolution:
            self.slots["video_resolution"] = resolution

        width, height = attrs.get("width"), attrs.get("height")
        if width and height and self.slots.get("aspect_ratio") is None:
            self.slots["aspect_ratio"] = f"{width}x{height}"

        if attrs.get("videoCodec"):
            self.slots["video_codec"] = attrs["videoCodec"]

        profile = attrs.get("videoProfile")
        if profile:
            codec = self.slots.get("video_codec")
            self.slots["video_codec"] = f"{codec.upper()} {profile.upper()}" if codec else profile.upper()

        frame_rate = attrs.get("videoFrameRate") or attrs.get("frameRate")
        if frame_rate:
            self.slots["video_frame_rate"] = frame_rate

        aspect = attrs.get("aspectRatio") or attrs.get("videoAspectRatio")
        if aspect:
            self.slots["aspect_ratio"] = aspect

        if attrs.get("audioCodec"):
            self.slots["audio_codec"] = attrs["audioCodec"]
        channels = _int(attrs, "audioChannels")
        if channels is not None:
            self.slots["audio_channels"] = channels
        if attrs.get("audioProfile"):
            self.slots["audio_profile"] = attrs["audioProfile"]
        if attrs.get("container"):
            self.slots["container"] = attrs["container"]
        bitrate = _int(attrs, "bitrate")
        if bitrate is not None:
            self.slots["bitrate"] = bitrate

    def merge_part(self, attrs: Dict[str, str]) -> None:
        self.touched = True
        if attrs.get("container"):
            self.slots["container"] = attrs["container"]
        bitrate = _int(attrs, "bitrate")
        if bitrate is not None:
            self.slots["bitrate"] = bitrate
        size = _int(attrs, "size")
        if size is not None:
            self.slots["file_size"] = size

    def finalize(self) -> MovieTechnicalInfo:
        return MovieTechnicalInfo(**self.slots)


def _user(attrs: Dict[str, str]) -> SessionUser:
    email = attrs.get("email")
    return SessionUser(
        id=_int(attrs, "id", 0),
        title=attrs.get("title", ""),
        thumb=attrs.get("thumb"),
        uuid=attrs.get("uuid"),
        email=email.lower() if email else None,
    )


def _player(attrs: Dict[str, str]) -> SessionPlayer:
    return SessionPlayer(
        address=attrs.get("address"),
        device=attrs.get("device"),
        platform=attrs.get("platform"),
        product=attrs.get("product"),
        state=attrs.get("state"),
        title=attrs.get("title"),
        version=attrs.get("version"),
    )


def _transcode(attrs: Dict[str, str]) -> TranscodeSession:
    return TranscodeSession(
        key=attrs.get("key"),
        progress=_float(attrs, "progress"),
        speed=_float(attrs, "speed"),
        duration=_int(attrs, "duration"),
        video_decision=attrs.get("videoDecision"),
        audio_decision=attrs.get("audioDecision"),
        container=attrs.get("container"),
        video_codec=attrs.get("videoCodec"),
        audio_codec=attrs.get("audioCodec"),
    )


def parse_sessions_xml(data: Payload) -> SessionsContainer:
    """Decode `/status/sessions` into video and track sessions in document order"""
    size: Optional[int] = None
    videos: List[VideoSession] = []
    tracks: List[TrackSession] = []

    current: Optional[Dict[str, Any]] = None
    current_kind: Optional[str] = None
    technical: Optional[TechnicalAccumulator] = None

    for event, element in _iter_events(data):
        tag, attrs = element.tag, element.attrib

        if event == "start":
            if tag == "MediaContainer" and size is None:
                size = _int(attrs, "size", 0)
            elif tag in ("Video", "Track") and current is None:
                current_kind = tag
                technical = TechnicalAccumulator()
                current = {
                    "id": attrs.get("ratingKey", ""),
                    "session_key": attrs.get("sessionKey"),
                    "title": attrs.get("title"),
                    "duration": _int(attrs, "duration", 0),
                    "view_offset": _int(attrs, "viewOffset", 0),
                }
                if tag == "Video":
                    current["year"] = _int(attrs, "year")
                else:
                    current["parent_title"] = attrs.get("parentTitle")
                    current["grandparent_title"] = attrs.get("grandparentTitle")
            elif current is not None:
                if tag == "User":
                    current["user"] = _user(attrs)
                elif tag == "Player":
                    current["player"] = _player(attrs)
                elif tag == "TranscodeSession" and current_kind == "Video":
                    current["transcode_session"] = _transcode(attrs)
                elif tag == "Media":
                    technical.merge_media(attrs)
                elif tag == "Part":
                    technical.merge_part(attrs)

        elif event == "end" and tag == current_kind and current is not None:
            if current_kind == "Video":
                if technical.touched:
                    current["technical"] = technical.finalize()
                videos.append(VideoSession(**current))
            else:
                tracks.append(TrackSession(**current))
            current, current_kind, technical = None, None, None

    if size is None:
        raise DecodeError("No sessions response parsed")

    logger.debug(f"Parsed {len(videos)} video and {len(tracks)} track sessions")
    return SessionsContainer(size=size, video=videos, track=tracks)


def parse_movie_metadata_xml(data: Payload) -> MovieMetadataContainer:
    """Decode `/library/metadata/{id}` into rich movie records"""
    size: Optional[int] = None
    movies: List[MovieMetadata] = []

    current: Optional[Dict[str, Any]] = None
    technical: Optional[TechnicalAccumulator] = None
    tags: Dict[str, list] = {}

    for event, element in _iter_events(data):
        tag, attrs = element.tag, element.attrib

        if event == "start":
            if tag == "MediaContainer" and size is None:
                size = _int(attrs, "size", 0)
            elif tag == "Video" and current is None:
                technical = TechnicalAccumulator()
                technical.merge_video(attrs)
                tags = {key: [] for key in ("roles", "directors", "writers", "genres", "countries", "ratings", "guids")}
                current = {
                    "id": attrs.get("ratingKey", ""),
                    "title": attrs.get("title"),
                    "year": _int(attrs, "year"),
                    "studio": attrs.get("studio"),
                    "summary": attrs.get("summary"),
                    "rating": _float(attrs, "rating"),
                    "audience_rating": _float(attrs, "audienceRating"),
                    "audience_rating_image": attrs.get("audienceRatingImage"),
                    "content_rating": attrs.get("contentRating"),
                    "duration": _int(attrs, "duration", 0),
                    "tagline": attrs.get("tagline"),
                    "thumb": attrs.get("thumb"),
                    "art": attrs.get("art"),
                    "originally_available_at": attrs.get("originallyAvailableAt"),
                    "guid": attrs.get("guid"),
                }
            elif current is not None:
                if tag == "Media":
                    technical.merge_media(attrs)
                elif tag == "Part":
                    technical.merge_part(attrs)
                elif tag == "Role":
                    tags["roles"].append(MovieRole(
                        id=attrs.get("id", ""),
                        tag=attrs.get("tag", ""),
                        role=attrs.get("role"),
                        thumb=attrs.get("thumb"),
                    ))
                elif tag == "Director":
                    tags["directors"].append(MovieDirector(
                        id=attrs.get("id", ""), tag=attrs.get("tag", ""), thumb=attrs.get("thumb")
                    ))
                elif tag == "Writer":
                    tags["writers"].append(MovieWriter(
                        id=attrs.get("id", ""), tag=attrs.get("tag", ""), thumb=attrs.get("thumb")
                    ))
                elif tag == "Rating":
                    tags["ratings"].append(MovieRating(
                        id=attrs.get("id"),
                        image=attrs.get("image"),
                        type=attrs.get("type"),
                        value=_float(attrs, "value"),
                        count=_int(attrs, "count"),
                    ))
                elif tag == "Guid" and attrs.get("id"):
                    tags["guids"].append(MovieGuid(id=attrs["id"]))
                elif tag == "Genre":
                    tags["genres"].append(MovieGenre(id=attrs.get("id", ""), tag=attrs.get("tag", "")))
                elif tag == "Country":
                    tags["countries"].append(MovieCountry(id=attrs.get("id", ""), tag=attrs.get("tag", "")))
                elif tag == "UltraBlurColors":
                    current["ultra_blur_colors"] = UltraBlurColors(
                        top_left=attrs.get("topLeft"),
                        top_right=attrs.get("topRight"),
                        bottom_left=attrs.get("bottomLeft"),
                        bottom_right=attrs.get("bottomRight"),
                    )

        elif event == "end" and tag == "Video" and current is not None:
            for key, values in tags.items():
                current[key] = values or None
            current["technical"] = technical.finalize()
            movie = MovieMetadata(**current)
            logger.debug(
                f"Movie {movie.id} parsed with {len(movie.genres or [])} genres "
                f"and {len(movie.countries or [])} countries"
            )
            movies.append(movie)
            current, technical, tags = None, None, {}

    if size is None:
        raise DecodeError("No movie metadata response parsed")

    return MovieMetadataContainer(size=size, video=movies)


def parse_activities_xml(data: Payload) -> ActivitiesContainer:
    """Decode `/activities/`; each Activity may carry several Context children"""
    size: Optional[int] = None
    activities: List[Activity] = []
    current: Optional[Dict[str, Any]] = None
    contexts: List[ActivityContext] = []

    for event, element in _iter_events(data):
        tag, attrs = element.tag, element.attrib

        if event == "start":
            if tag == "MediaContainer" and size is None:
                size = _int(attrs, "size", 0)
            elif tag == "Activity":
                current = {
                    "id": attrs.get("uuid", ""),
                    "type": attrs.get("type"),
                    "cancellable": _int(attrs, "cancellable"),
                    "user_id": _int(attrs, "userID"),
                    "title": attrs.get("title"),
                    "subtitle": attrs.get("subtitle"),
                    "progress": _int(attrs, "progress"),
                }
                contexts = []
            elif tag == "Context" and current is not None:
                contexts.append(ActivityContext(library_section_id=attrs.get("librarySectionID")))

        elif event == "end" and tag == "Activity" and current is not None:
            activities.append(Activity(**current, context=contexts or None))
            current = None

    if size is None:
        raise DecodeError("No activities response parsed")

    return ActivitiesContainer(size=size, activity=activities)


def parse_capabilities_json(data: Any) -> ServerCapabilities:
    """Decode the JSON `MediaContainer` returned by the server root"""
    if not isinstance(data, dict) or not isinstance(data.get("MediaContainer"), dict):
        raise DecodeError("Missing MediaContainer in capabilities response")
    try:
        return ServerCapabilities.model_validate(data["MediaContainer"])
    except PydanticValidationError as e:
        raise DecodeError(f"Invalid capabilities payload: {e.error_count()} errors") from e
