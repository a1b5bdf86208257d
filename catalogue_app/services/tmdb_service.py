"""
TMDB (The Movie Database) API Service

Client for the two provider reads the import workflow consumes:
free-text movie search and full movie details (with credits).
"""

import logging
from dataclasses import dataclass

import requests
from django.conf import settings

logger = logging.getLogger(__name__)

TMDB_API_BASE_URL = "https://api.themoviedb.org/3"
POSTER_BASE_URL = "https://image.tmdb.org/t/p/w500"
BACKDROP_BASE_URL = "https://image.tmdb.org/t/p/original"
DEFAULT_REQUEST_TIMEOUT = 10


class ProviderRequestError(Exception):
    """Raised when a provider request fails or its payload cannot be parsed."""


class ProviderRateLimitError(ProviderRequestError):
    """Raised when the provider answers HTTP 429."""

    def __init__(self, message: str, retry_after: int | None = None):
        super().__init__(message)
        self.retry_after = retry_after


@dataclass
class TMDBGenre:
    id: int
    name: str


@dataclass
class TMDBCastMember:
    id: int
    name: str
    character: str
    order: int


@dataclass
class TMDBCrewMember:
    id: int
    name: str
    job: str
    department: str


@dataclass
class TMDBMovieResult:
    """A single entry of a search response."""

    id: int
    title: str
    original_title: str
    overview: str
    release_date: str
    popularity: float
    poster_path: str | None


@dataclass
class TMDBMovieDetails:
    """Full detail record for one movie, credits included."""

    id: int
    title: str
    original_title: str
    overview: str
    release_date: str
    runtime: int | None
    poster_path: str | None
    backdrop_path: str | None
    genres: list[TMDBGenre]
    cast: list[TMDBCastMember]
    crew: list[TMDBCrewMember]

    @property
    def directors(self) -> list[TMDBCrewMember]:
        return [c for c in self.crew if c.job == "Director"]

    @property
    def poster_url(self) -> str | None:
        return get_poster_url(self.poster_path)

    @property
    def backdrop_url(self) -> str | None:
        if not self.backdrop_path:
            return None
        return f"{BACKDROP_BASE_URL}{self.backdrop_path}"


@dataclass
class TMDBSearchResponse:
    page: int
    total_pages: int
    total_results: int
    results: list[TMDBMovieResult]


def get_poster_url(poster_path: str | None) -> str | None:
    if not poster_path:
        return None
    return f"{POSTER_BASE_URL}{poster_path}"


class TMDBService:
    """
    Service for interacting with The Movie Database (TMDB) API.

    Requires TMDB_READ_ACCESS_TOKEN to be set in Django settings.
    """

    def __init__(self, api_token: str | None = None, timeout: float | None = None):
        self.api_token = api_token or getattr(settings, "TMDB_READ_ACCESS_TOKEN", None)
        if not self.api_token:
            raise ProviderRequestError(
                "TMDB_READ_ACCESS_TOKEN not configured in settings. "
                "Get your API token from https://www.themoviedb.org/settings/api"
            )
        self.timeout = timeout or getattr(settings, "TMDB_REQUEST_TIMEOUT", DEFAULT_REQUEST_TIMEOUT)

    def _get_headers(self) -> dict[str, str]:
        return {
            "Authorization": f"Bearer {self.api_token}",
            "accept": "application/json",
        }

    def _make_request(self, endpoint: str, params: dict | None = None) -> dict:
        """
        Make a GET request to the TMDB API.

        Raises:
            ProviderRateLimitError: If TMDB answers 429
            ProviderRequestError: If the request fails for any other reason
        """
        url = f"{TMDB_API_BASE_URL}{endpoint}"

        try:
            response = requests.get(
                url,
                headers=self._get_headers(),
                params=params,
                timeout=self.timeout,
            )
            if response.status_code == 429:
                retry_after = _parse_retry_after(response.headers.get("Retry-After"))
                logger.warning("TMDB rate limit hit: %s (retry after %s)", url, retry_after)
                raise ProviderRateLimitError("TMDB API rate limit exceeded", retry_after=retry_after)
            response.raise_for_status()
            return response.json()
        except requests.exceptions.Timeout:
            logger.error("TMDB API request timed out: %s", url)
            raise ProviderRequestError("TMDB API request timed out")
        except requests.exceptions.HTTPError as e:
            logger.error("TMDB API HTTP error: %s - %s", e.response.status_code, e.response.text)
            raise ProviderRequestError(f"TMDB API error: {e.response.status_code}")
        except requests.exceptions.RequestException as e:
            logger.error("TMDB API request failed: %s", str(e))
            raise ProviderRequestError(f"TMDB API request failed: {str(e)}")
        except ValueError:
            logger.error("TMDB API returned a non-JSON body: %s", url)
            raise ProviderRequestError("TMDB API returned an invalid response")

    def search_movie(
        self,
        query: str,
        language: str = "en-US",
        page: int = 1,
        include_adult: bool = False,
    ) -> TMDBSearchResponse:
        """
        Search for movies by free text, ranked by TMDB relevance.

        Raises:
            ProviderRequestError: If the search fails
        """
        params = {
            "query": query,
            "language": language,
            "page": page,
            "include_adult": str(include_adult).lower(),
        }

        logger.info("Searching TMDB for movie: '%s' (language=%s)", query, language)

        data = self._make_request("/search/movie", params)

        try:
            results = [
                TMDBMovieResult(
                    id=movie["id"],
                    title=movie.get("title") or "",
                    original_title=movie.get("original_title") or "",
                    overview=movie.get("overview") or "",
                    release_date=movie.get("release_date") or "",
                    popularity=movie.get("popularity") or 0.0,
                    poster_path=movie.get("poster_path"),
                )
                for movie in data.get("results") or []
            ]
            return TMDBSearchResponse(
                page=data.get("page", 1),
                total_pages=data.get("total_pages", 0),
                total_results=data.get("total_results", 0),
                results=results,
            )
        except (KeyError, TypeError, AttributeError) as e:
            raise _malformed_payload("/search/movie", e) from e

    def get_movie_details(self, tmdb_id: int, language: str = "en-US") -> TMDBMovieDetails:
        """
        Get the full record for a movie, with cast and crew appended in the same call.

        Raises:
            ProviderRequestError: If the request fails
        """
        params = {"language": language, "append_to_response": "credits"}

        logger.info("Fetching TMDB movie details for ID: %d (language=%s)", tmdb_id, language)

        data = self._make_request(f"/movie/{tmdb_id}", params)

        try:
            credits_data = data.get("credits") or {}
            return TMDBMovieDetails(
                id=data["id"],
                title=data.get("title") or "",
                original_title=data.get("original_title") or "",
                overview=data.get("overview") or "",
                release_date=data.get("release_date") or "",
                runtime=data.get("runtime"),
                poster_path=data.get("poster_path"),
                backdrop_path=data.get("backdrop_path"),
                genres=[TMDBGenre(id=g["id"], name=g.get("name", "")) for g in data.get("genres") or []],
                cast=[
                    TMDBCastMember(
                        id=c["id"],
                        name=c.get("name", ""),
                        character=c.get("character", ""),
                        order=c.get("order", 0),
                    )
                    for c in credits_data.get("cast") or []
                ],
                crew=[
                    TMDBCrewMember(
                        id=c["id"],
                        name=c.get("name", ""),
                        job=c.get("job", ""),
                        department=c.get("department", ""),
                    )
                    for c in credits_data.get("crew") or []
                ],
            )
        except (KeyError, TypeError, AttributeError) as e:
            raise _malformed_payload(f"/movie/{tmdb_id}", e) from e


def _malformed_payload(endpoint: str, error: Exception) -> ProviderRequestError:
    logger.error("Unexpected TMDB payload from %s: %r", endpoint, error)
    return ProviderRequestError(f"TMDB returned an unexpected payload for {endpoint}: {error!r}")


def _parse_retry_after(value: str | None) -> int | None:
    if not value:
        return None
    try:
        return int(value)
    except ValueError:
        return None
