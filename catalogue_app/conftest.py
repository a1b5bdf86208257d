"""
Pytest fixtures shared by the catalogue_app test packages.
"""

from unittest.mock import MagicMock

import pytest
from django.contrib.auth import get_user_model
from django.core.cache import caches

from catalogue_app.services.tmdb_service import (
    ProviderRequestError,
    TMDBCastMember,
    TMDBCrewMember,
    TMDBGenre,
    TMDBMovieDetails,
    TMDBMovieResult,
    TMDBSearchResponse,
)


def make_details(
    tmdb_id: int,
    title: str,
    release_date: str = "",
    genres: tuple[str, ...] = ("Comedy",),
    cast: tuple[str, ...] = (),
    directors: tuple[str, ...] = (),
    **overrides,
) -> TMDBMovieDetails:
    """Build a TMDB detail record with sensible defaults."""
    fields = {
        "id": tmdb_id,
        "title": title,
        "original_title": title,
        "overview": f"Overview of {title}",
        "release_date": release_date,
        "runtime": 97,
        "poster_path": f"/poster_{tmdb_id}.jpg",
        "backdrop_path": None,
        "genres": [TMDBGenre(id=i, name=name) for i, name in enumerate(genres, start=1)],
        "cast": [
            TMDBCastMember(id=100 + i, name=name, character="", order=i) for i, name in enumerate(cast)
        ],
        "crew": [
            TMDBCrewMember(id=200 + i, name=name, job="Director", department="Directing")
            for i, name in enumerate(directors)
        ],
    }
    fields.update(overrides)
    return TMDBMovieDetails(**fields)


def search_response(*details: TMDBMovieDetails) -> TMDBSearchResponse:
    return TMDBSearchResponse(
        page=1,
        total_pages=1 if details else 0,
        total_results=len(details),
        results=[
            TMDBMovieResult(
                id=d.id,
                title=d.title,
                original_title=d.original_title,
                overview=d.overview,
                release_date=d.release_date,
                popularity=10.0,
                poster_path=d.poster_path,
            )
            for d in details
        ],
    )


@pytest.fixture(autouse=True)
def clear_caches():
    """Batches and read-cache entries live in locmem; start every test empty."""
    caches["default"].clear()
    yield
    caches["default"].clear()


@pytest.fixture
def user(db):
    return get_user_model().objects.create_user(username="alice", password="secret")


@pytest.fixture
def other_user(db):
    return get_user_model().objects.create_user(username="bob", password="secret")


@pytest.fixture
def elf():
    return make_details(10719, "Elf", "2003-11-07", genres=("Comedy", "Family"), cast=("Will Ferrell",))


@pytest.fixture
def grinch():
    return make_details(8871, "How the Grinch Stole Christmas", "2000-11-08", cast=("Jim Carrey",))


@pytest.fixture
def mock_tmdb_service():
    """
    MagicMock TMDBService answering from an in-memory catalogue.

    Register movies per search query with mock.register(query, *details);
    unknown queries return no results and unknown ids raise ProviderRequestError.
    """
    mock = MagicMock()
    by_query = {}
    by_id = {}

    def register(query, *details):
        by_query[query] = list(details)
        for d in details:
            by_id[d.id] = d

    def search_movie(query, **kwargs):
        return search_response(*by_query.get(query, []))

    def get_movie_details(tmdb_id, **kwargs):
        if tmdb_id not in by_id:
            raise ProviderRequestError("TMDB API error: 404")
        return by_id[tmdb_id]

    mock.register = register
    mock.search_movie.side_effect = search_movie
    mock.get_movie_details.side_effect = get_movie_details
    return mock
