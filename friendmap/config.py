from pydantic_settings import BaseSettings
from typing import List, Optional, Tuple


class Settings(BaseSettings):
    # Geohash proximity
    geohash_at_place_res: int = 7
    geohash_radii: List[Tuple[float, int]] = [(0.5, 6), (3, 5), (20, 4)]

    # People you may know
    people_cache_ttl_minutes: int = 10
    default_closeness: float = 1.0
    friendship_day_scale: float = 30.0

    # Place recommendation weights
    friend_weight: float = 4
    past_visit_weight: float = 5
    count_weight: float = 3
    similarity_weight: float = 2
    distance_weight: float = 1
    type_weight: float = 1

    # Feedback
    feedback_step: float = 1
    liked_weight_increase: float = 0.5
    adjustment_delta: float = 0.1

    # Place search
    google_maps_api_key: Optional[str] = None
    places_api_url: str = "https://places.googleapis.com/v1/places:searchNearby"
    places_request_timeout: float = 10.0
    nearby_places_radius_meters: float = 2000
    max_place_results: int = 10
    included_place_types: List[str] = [
        "museum", "performing_arts_theater", "library", "amusement_park",
        "aquarium", "botanical_garden", "bowling_alley", "comedy_club",
        "community_center", "concert_hall", "convention_center",
        "cultural_center", "dance_hall", "event_venue", "garden",
        "internet_cafe", "karaoke", "marina", "movie_theater",
        "national_park", "night_club", "park", "planetarium",
        "skateboard_park", "state_park", "tourist_attraction",
        "video_arcade", "water_park", "wildlife_park", "wildlife_refuge",
        "zoo", "restaurant",
    ]

    # Visit history
    time_still_at_location_seconds: float = 120
    geohash_dup_res: int = 7
    initial_visit_duration_seconds: float = 60

    # Logging
    log_level: str = "INFO"
    log_format: str = "structured"
    log_file: Optional[str] = None

    class Config:
        env_file = ".env"
        env_prefix = "FRIENDMAP_"


settings = Settings()
