from pydantic import BaseModel, Field
from typing import List, Optional


class IMDbImage(BaseModel):
    url: Optional[str] = None
    width: Optional[int] = None
    height: Optional[int] = None

    class Config:
        extra = "ignore"


class IMDbRating(BaseModel):
    aggregate_rating: Optional[float] = Field(None, alias="aggregateRating")
    vote_count: Optional[int] = Field(None, alias="voteCount")

    class Config:
        populate_by_name = True
        extra = "ignore"


class IMDbCountry(BaseModel):
    code: Optional[str] = None
    name: Optional[str] = None

    class Config:
        extra = "ignore"


class IMDbName(BaseModel):
    id: str
    display_name: str = Field("", alias="displayName")
    primary_image: Optional[IMDbImage] = Field(None, alias="primaryImage")
    primary_professions: List[str] = Field(default_factory=list, alias="primaryProfessions")
    biography: Optional[str] = None
    birth_location: Optional[str] = Field(None, alias="birthLocation")

    class Config:
        populate_by_name = True
        extra = "ignore"


class IMDbCredit(BaseModel):
    name: Optional[IMDbName] = None
    category: Optional[str] = None
    characters: List[str] = Field(default_factory=list)

    class Config:
        extra = "ignore"


class IMDbTitle(BaseModel):
    id: str
    type: Optional[str] = None
    primary_title: Optional[str] = Field(None, alias="primaryTitle")
    original_title: Optional[str] = Field(None, alias="originalTitle")
    primary_image: Optional[IMDbImage] = Field(None, alias="primaryImage")
    start_year: Optional[int] = Field(None, alias="startYear")
    runtime_seconds: Optional[int] = Field(None, alias="runtimeSeconds")
    genres: List[str] = Field(default_factory=list)
    rating: Optional[IMDbRating] = None
    plot: Optional[str] = None
    origin_countries: List[IMDbCountry] = Field(default_factory=list, alias="originCountries")

    class Config:
        populate_by_name = True
        extra = "ignore"

    @property
    def title(self) -> Optional[str]:
        return self.primary_title or self.original_title

    @property
    def runtime_minutes(self) -> Optional[int]:
        if self.runtime_seconds is None:
            return None
        return self.runtime_seconds // 60

    @property
    def poster_url(self) -> Optional[str]:
        return self.primary_image.url if self.primary_image else None

    @property
    def vote_average(self) -> Optional[float]:
        return self.rating.aggregate_rating if self.rating else None


class IMDbCreditsResponse(BaseModel):
    credits: List[IMDbCredit] = Field(default_factory=list)
    next_page_token: Optional[str] = Field(None, alias="nextPageToken")

    class Config:
        populate_by_name = True
        extra = "ignore"


class IMDbSearchResponse(BaseModel):
    titles: List[IMDbTitle] = Field(default_factory=list)

    class Config:
        extra = "ignore"
