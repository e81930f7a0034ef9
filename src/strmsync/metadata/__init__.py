from .nfo import clean_title, extract_episode_title, generate_episode_nfo, generate_movie_nfo, generate_tvshow_nfo

__all__ = [
    "clean_title",
    "extract_episode_title",
    "generate_episode_nfo",
    "generate_movie_nfo",
    "generate_tvshow_nfo",
]
