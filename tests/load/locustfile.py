"""Load testing with Locust for the semantic search service."""

import random
from locust import HttpUser, task, between

QUERIES = [
    "food pantry open on weekends",
    "emergency housing for families",
    "free legal aid for tenants",
    "mental health counseling",
    "job training programs",
    "senior meal delivery",
]

# (latitude, longitude) origins for geo-filtered searches
ORIGINS = [
    (40.7128, -74.0060),
    (39.9526, -75.1652),
    (41.8781, -87.6298),
]


class SearchServiceUser(HttpUser):
    """Load test user for the search service."""

    wait_time = between(1, 4)
    host = "http://localhost:8080"

    def on_start(self):
        """Setup for each user."""
        response = self.client.get("/health")
        if response.status_code != 200:
            raise Exception("Search service not available")

    @task(10)
    def search_semantic(self):
        """Test semantic-only search."""
        payload = {
            "query": random.choice(QUERIES),
            "limit": random.randint(5, 20)
        }

        with self.client.post(
            "/search",
            json=payload,
            catch_response=True,
            name="/search [semantic]"
        ) as response:
            if response.status_code == 200:
                data = response.json()
                if not isinstance(data, list):
                    response.failure("Search response is not a list")
                elif len(data) > payload["limit"]:
                    response.failure(f"Got {len(data)} results for limit {payload['limit']}")
                elif response.elapsed.total_seconds() > 0.4:
                    response.failure(f"Search latency {response.elapsed.total_seconds() * 1000:.2f}ms exceeds 400ms target")
                else:
                    response.success()
            else:
                response.failure(f"HTTP {response.status_code}")

    @task(5)
    def search_nearby(self):
        """Test geo-filtered search."""
        latitude, longitude = random.choice(ORIGINS)
        payload = {
            "query": random.choice(QUERIES),
            "latitude": latitude,
            "longitude": longitude,
            "limit": 10
        }

        with self.client.post(
            "/search",
            json=payload,
            catch_response=True,
            name="/search [geo]"
        ) as response:
            if response.status_code == 200:
                data = response.json()
                if any(item.get("distance") is None for item in data):
                    response.failure("Geo result without distance")
                else:
                    response.success()
            else:
                response.failure(f"HTTP {response.status_code}")

    @task(1)
    def health_check(self):
        """Test health endpoint."""
        with self.client.get("/health", catch_response=True) as response:
            if response.status_code == 200:
                response.success()
            else:
                response.failure(f"HTTP {response.status_code}")


class StressTestUser(HttpUser):
    """High-intensity stress test user."""

    wait_time = between(0.1, 0.5)  # Very short wait times
    host = "http://localhost:8080"

    @task
    def rapid_searches(self):
        """Rapid-fire searches to find the pool saturation point."""
        self.client.post("/search", json={"query": random.choice(QUERIES), "limit": 10})


if __name__ == "__main__":
    # Run with: locust -f tests/load/locustfile.py --host=http://localhost:8080
    pass
