import pytest

from tests.factories import DROPOFF, PICKUP

ALICE = {"Authorization": "Bearer token-alice"}


@pytest.mark.unit
class TestDrivers:
    def test_requires_token(self, client):
        assert client.get("/drivers").status_code == 401

    def test_lists_drivers_in_registration_order(self, client, driver_registry, driver_factory):
        driver_registry.register(driver_factory.driver(id="D-2", name="Ana"))
        driver_registry.register(driver_factory.driver(id="D-1", available=False))

        response = client.get("/drivers", headers=ALICE)

        assert response.status_code == 200
        body = response.json()
        assert [d["id"] for d in body] == ["D-2", "D-1"]
        assert body[0]["name"] == "Ana"
        assert body[0]["available"] is True
        assert body[1]["available"] is False
        assert set(body[0]) == {"id", "name", "vehicleType", "position", "available"}

    def test_booked_driver_is_unavailable(self, client, seeded_driver):
        client.post("/rides", json={"pickup": PICKUP, "dropoff": DROPOFF}, headers=ALICE)

        response = client.get(f"/drivers/{seeded_driver.id}", headers=ALICE)

        assert response.status_code == 200
        assert response.json()["available"] is False

    def test_unknown_driver(self, client):
        response = client.get("/drivers/D-404", headers=ALICE)

        assert response.status_code == 404
        assert response.json() == {"error": "Driver not found"}
