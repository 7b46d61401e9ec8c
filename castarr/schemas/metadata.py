from pydantic import BaseModel
from typing import List, Optional


class MovieTechnicalInfo(BaseModel):
    """Technical specs; every field stays None unless the payload supplies it"""
    video_resolution: Optional[str] = None
    video_codec: Optional[str] = None
    video_frame_rate: Optional[str] = None
    aspect_ratio: Optional[str] = None
    audio_codec: Optional[str] = None
    audio_channels: Optional[int] = None
    audio_profile: Optional[str] = None
    container: Optional[str] = None
    bitrate: Optional[int] = None
    file_size: Optional[int] = None

    class Config:
        frozen = True


class MovieRole(BaseModel):
    id: str = ""
    tag: str = ""
    role: Optional[str] = None
    thumb: Optional[str] = None

    class Config:
        frozen = True


class MovieDirector(BaseModel):
    id: str = ""
    tag: str = ""
    thumb: Optional[str] = None

    class Config:
        frozen = True


class MovieWriter(BaseModel):
    id: str = ""
    tag: str = ""
    thumb: Optional[str] = None

    class Config:
        frozen = True


class MovieRating(BaseModel):
    id: Optional[str] = None
    image: Optional[str] = None
    type: Optional[str] = None
    value: Optional[float] = None
    count: Optional[int] = None

    class Config:
        frozen = True


class MovieGuid(BaseModel):
    id: str

    class Config:
        frozen = True


class MovieGenre(BaseModel):
    id: str = ""
    tag: str = ""

    class Config:
        frozen = True


class MovieCountry(BaseModel):
    id: str = ""
    tag: str = ""

    class Config:
        frozen = True


class UltraBlurColors(BaseModel):
    """Four-corner palette used for the background gradient"""
    top_left: Optional[str] = None
    top_right: Optional[str] = None
    bottom_left: Optional[str] = None
    bottom_right: Optional[str] = None

    class Config:
        frozen = True


class MovieMetadata(BaseModel):
    id: str = ""
    title: Optional[str] = None
    year: Optional[int] = None
    studio: Optional[str] = None
    summary: Optional[str] = None
    rating: Optional[float] = None
    audience_rating: Optional[float] = None
    audience_rating_image: Optional[str] = None
    content_rating: Optional[str] = None
    duration: int = 0
    tagline: Optional[str] = None
    thumb: Optional[str] = None
    art: Optional[str] = None
    originally_available_at: Optional[str] = None
    guid: Optional[str] = None
    roles: Optional[List[MovieRole]] = None
    directors: Optional[List[MovieDirector]] = None
    writers: Optional[List[MovieWriter]] = None
    genres: Optional[List[MovieGenre]] = None
    countries: Optional[List[MovieCountry]] = None
    ratings: Optional[List[MovieRating]] = None
    guids: Optional[List[MovieGuid]] = None
    ultra_blur_colors: Optional[UltraBlurColors] = None
    technical: MovieTechnicalInfo = MovieTechnicalInfo()

    class Config:
        frozen = True

    @property
    def imdb_id(self) -> Optional[str]:
        """IMDb id taken from the external guids, falling back to the primary guid"""
        candidates = [g.id for g in self.guids or []]
        if self.guid:
            candidates.append(self.guid)
        for candidate in candidates:
            if candidate.startswith("imdb://"):
                return candidate[len("imdb://"):]
        return None

    def ratings_from(self, keyword: str) -> List[MovieRating]:
        """Ratings whose image identifies the given provider (imdb, themoviedb, rottentomatoes)"""
        return [r for r in self.ratings or [] if r.image and keyword in r.image]


class MovieMetadataContainer(BaseModel):
    size: int = 0
    video: List[MovieMetadata] = []

    class Config:
        frozen = True

    @property
    def first(self) -> Optional[MovieMetadata]:
        return self.video[0] if self.video else None
