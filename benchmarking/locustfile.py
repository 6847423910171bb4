"""Locust load testing script for the story catalog."""

import random
import uuid

from locust import HttpUser, between, task

# Common genre slugs and search terms for random filtering
SAMPLE_GENRES = [
    "action",
    "romance",
    "fantasy",
    "comedy",
    "isekai",
    "slice-of-life",
]
SAMPLE_QUERIES = ["dragon", "school", "100%", "love", "king", "_"]
SORT_KEYS = ["latest", "popular", "name", "rating", "oldest"]


class CatalogUser(HttpUser):
    """Simulated reader browsing and rating stories."""

    wait_time = between(1, 3)  # Wait 1-3 seconds between tasks

    def on_start(self) -> None:
        self.user_id = str(uuid.uuid4())
        self.story_ids: list[str] = []

    @task(3)
    def browse_latest(self) -> None:
        """Front page shelves - most common operation."""
        response = self.client.get("/api/v1/stories/latest")
        if response.ok:
            self.story_ids = [s["id"] for s in response.json()]
        self.client.get("/api/v1/stories/hot")

    @task(2)
    def page_through_listing(self) -> None:
        """Simulate paging through the full listing."""
        page = random.randint(1, 5)
        self.client.get(f"/api/v1/stories?page={page}&page_size=20")

    @task(2)
    def search_text(self) -> None:
        """Plain substring search."""
        q = random.choice(SAMPLE_QUERIES)
        self.client.get("/api/v1/stories/search", params={"q": q})

    @task(2)
    def advanced_search(self) -> None:
        """Search with genre, status and sort filters."""
        genres = ",".join(random.sample(SAMPLE_GENRES, k=2))
        self.client.get(
            "/api/v1/stories/advanced-search",
            params={
                "genres": genres,
                "status": random.choice(["ongoing", "completed"]),
                "sort_by": random.choice(SORT_KEYS),
            },
        )

    @task(1)
    def rate_random_story(self) -> None:
        """Rate (or re-rate) a story seen on the latest shelf."""
        if not self.story_ids:
            return
        story_id = random.choice(self.story_ids)
        self.client.post(
            f"/api/v1/ratings/stories/{story_id}",
            json={"score": random.randint(1, 5)},
            headers={"X-User-Id": self.user_id},
        )
