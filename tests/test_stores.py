import unittest
from datetime import datetime
from unittest import mock

from marketplace.data.database import SessionLocal
from marketplace.domain import geo
from marketplace.domain.errors import ValidationError
from marketplace.repos.location_repo import LocationRepo
from marketplace.services.location_service import LocationService
from tests.base import ApiTestCase

ALWAYS_OPEN = {day: {"open": "00:00", "close": "23:59", "is_open": True} for day in geo.WEEKDAYS}
WEEKDAYS_ONLY = {day: {"open": "09:00", "close": "17:00", "is_open": True} for day in geo.WEEKDAYS[:5]}

WARSAW = (52.2297, 21.0122)


class GeoTests(unittest.TestCase):
    def test_haversine_known_distance(self):
        # Warsaw -> Krakow is roughly 252 km
        distance = geo.haversine_m(52.2297, 21.0122, 50.0647, 19.9450)
        self.assertAlmostEqual(distance / 1000, 252, delta=3)
        self.assertEqual(geo.haversine_m(10, 10, 10, 10), 0)

    def test_bounding_box_contains_radius(self):
        min_lat, max_lat, min_lng, max_lng = geo.bounding_box(*WARSAW, 10000)
        self.assertLess(min_lat, WARSAW[0])
        self.assertGreater(max_lat, WARSAW[0])
        # the box edge is at least the radius away
        self.assertGreaterEqual(geo.haversine_m(WARSAW[0], WARSAW[1], max_lat, WARSAW[1]), 9999)
        self.assertGreaterEqual(geo.haversine_m(WARSAW[0], WARSAW[1], WARSAW[0], max_lng), 9999)

    def test_bounding_box_near_pole_spans_all_longitudes(self):
        _, max_lat, min_lng, max_lng = geo.bounding_box(89.99, 0, 5000)
        self.assertEqual(max_lat, 90.0)
        self.assertEqual((min_lng, max_lng), (-180.0, 180.0))

    def test_bounding_box_wraps_across_the_antimeridian(self):
        _, _, min_lng, max_lng = geo.bounding_box(0, 179.99, 10000)
        self.assertGreater(min_lng, max_lng)
        self.assertLess(min_lng, 179.99)
        self.assertGreater(max_lng, -180.0)
        self.assertLess(max_lng, -179.9)

        _, _, min_lng, max_lng = geo.bounding_box(0, -179.99, 10000)
        self.assertGreater(min_lng, 179.9)
        self.assertGreater(max_lng, -179.99)

    def test_validate_coordinates(self):
        geo.validate_coordinates(90, -180)
        for lat, lng in ((91, 0), (0, 181), (-90.5, 0)):
            with self.assertRaises(ValidationError) as ctx:
                geo.validate_coordinates(lat, lng)
            self.assertEqual(ctx.exception.message, "Invalid coordinates values")
        with self.assertRaises(ValidationError) as ctx:
            geo.validate_coordinates("52", 21)
        self.assertEqual(ctx.exception.message, "Invalid coordinates format")

    def test_is_open_at(self):
        wednesday_noon = datetime(2024, 5, 15, 12, 0)
        wednesday_night = datetime(2024, 5, 15, 20, 30)
        saturday_noon = datetime(2024, 5, 18, 12, 0)

        self.assertTrue(geo.is_open_at(WEEKDAYS_ONLY, wednesday_noon))
        self.assertFalse(geo.is_open_at(WEEKDAYS_ONLY, wednesday_night))
        self.assertFalse(geo.is_open_at(WEEKDAYS_ONLY, saturday_noon))
        self.assertFalse(geo.is_open_at(None, wednesday_noon))

    def test_closing_minute_still_counts_as_open(self):
        self.assertTrue(geo.is_open_at(WEEKDAYS_ONLY, datetime(2024, 5, 15, 17, 0)))
        self.assertTrue(geo.is_open_at(WEEKDAYS_ONLY, datetime(2024, 5, 15, 9, 0)))
        self.assertFalse(geo.is_open_at(WEEKDAYS_ONLY, datetime(2024, 5, 15, 8, 59)))

    def test_day_marked_closed(self):
        hours = {"monday": {"open": "09:00", "close": "17:00", "is_open": False}}
        self.assertFalse(geo.is_open_at(hours, datetime(2024, 5, 13, 12, 0)))

    def test_next_opening(self):
        # before opening today
        self.assertEqual(
            geo.next_opening(WEEKDAYS_ONLY, datetime(2024, 5, 15, 7, 0)), {"day": "Wednesday", "time": "09:00"}
        )
        # friday evening skips the weekend
        self.assertEqual(
            geo.next_opening(WEEKDAYS_ONLY, datetime(2024, 5, 17, 18, 0)), {"day": "Monday", "time": "09:00"}
        )
        self.assertIsNone(geo.next_opening({}, datetime(2024, 5, 17, 18, 0)))


class NearbyStoresTests(ApiTestCase):
    def setUp(self):
        super().setUp()
        self.near_token, self.near_id = self.register_retailer("near@example.com", "Near Grocer")
        self.mid_token, self.mid_id = self.register_retailer("mid@example.com", "Mid Pharmacy", "pharmacy")
        self.far_token, self.far_id = self.register_retailer("far@example.com", "Far Away")

        self.add_store(self.near_token, "Near Grocer", "grocery", WARSAW[0] + 0.001, WARSAW[1], ALWAYS_OPEN)
        self.add_store(self.mid_token, "Mid Pharmacy", "pharmacy", WARSAW[0] + 0.03, WARSAW[1], {})
        self.add_store(self.far_token, "Far Away", "grocery", WARSAW[0] + 1, WARSAW[1], ALWAYS_OPEN)

    def add_store(self, token, name, category, lat, lng, hours):
        resp = self.client.post(
            "/retailers/locations",
            json={
                "store_name": name,
                "business_category": category,
                "street": "Main 1",
                "city": "Warsaw",
                "latitude": lat,
                "longitude": lng,
                "operating_hours": hours,
            },
            headers=self.auth(token),
        )
        self.assertEqual(resp.status_code, 201, resp.text)
        return resp.json()["data"]

    def nearby(self, **params):
        params.setdefault("latitude", WARSAW[0])
        params.setdefault("longitude", WARSAW[1])
        return self.client.get("/stores/nearby", params=params)

    def test_results_within_radius_sorted_by_distance(self):
        resp = self.nearby()

        self.assertEqual(resp.status_code, 200, resp.text)
        stores = resp.json()["data"]
        self.assertEqual([s["retailer"]["user_id"] for s in stores], [self.near_id, self.mid_id])
        self.assertAlmostEqual(stores[0]["distance"], 111, delta=2)
        self.assertAlmostEqual(stores[1]["distance"], 3336, delta=10)
        self.assertTrue(stores[0]["is_open"])
        self.assertIsNone(stores[0]["next_opening"])
        self.assertFalse(stores[1]["is_open"])
        self.assertIsNone(stores[1]["next_opening"])

    def test_radius_limits_results(self):
        stores = self.nearby(max_distance=500).json()["data"]
        self.assertEqual([s["retailer"]["user_id"] for s in stores], [self.near_id])

        stores = self.nearby(max_distance=200000).json()["data"]
        self.assertEqual(len(stores), 3)

    def test_store_across_the_antimeridian_is_found(self):
        token, pacific_id = self.register_retailer("fiji@example.com", "Date Line Deli")
        self.add_store(token, "Date Line Deli", "grocery", 0, -179.99, ALWAYS_OPEN)

        stores = self.nearby(latitude=0, longitude=179.99, max_distance=10000).json()["data"]

        self.assertEqual([s["retailer"]["user_id"] for s in stores], [pacific_id])
        self.assertAlmostEqual(stores[0]["distance"], 2224, delta=10)

    def test_open_only_and_category(self):
        stores = self.nearby(open_only=True).json()["data"]
        self.assertEqual([s["retailer"]["user_id"] for s in stores], [self.near_id])

        stores = self.nearby(category="pharmacy").json()["data"]
        self.assertEqual([s["retailer"]["user_id"] for s in stores], [self.mid_id])

    def test_sort_by_rating(self):
        token, _ = self.register_customer()
        self.client.post(f"/stores/{self.mid_id}/reviews", json={"rating": 5}, headers=self.auth(token))
        self.client.post(f"/stores/{self.near_id}/reviews", json={"rating": 2}, headers=self.auth(token))

        stores = self.nearby(sort_by="rating").json()["data"]

        self.assertEqual([s["retailer"]["user_id"] for s in stores], [self.mid_id, self.near_id])

    def test_limit(self):
        stores = self.nearby(limit=1, max_distance=200000).json()["data"]
        self.assertEqual(len(stores), 1)

    def test_out_of_range_coordinates_never_reach_the_database(self):
        with mock.patch.object(LocationRepo, "stores_in_box") as stores_in_box:
            resp = self.nearby(latitude=91)
            self.assertEqual(resp.status_code, 400)
            self.assertEqual(resp.json()["error"], "Invalid coordinates values")

            resp = self.nearby(longitude=-200)
            self.assertEqual(resp.status_code, 400)

        stores_in_box.assert_not_called()

    def test_bad_radius_or_sort(self):
        self.assertEqual(self.nearby(max_distance=0).status_code, 400)
        self.assertEqual(self.nearby(limit=0).status_code, 400)
        self.assertEqual(self.nearby(sort_by="name").status_code, 422)

    def test_inactive_store_locations_are_skipped(self):
        location = self.client.get("/retailers/locations", headers=self.auth(self.near_token)).json()["data"][0]
        self.client.put(
            f"/retailers/locations/{location['id']}", json={"is_active": False}, headers=self.auth(self.near_token)
        )

        stores = self.nearby().json()["data"]

        self.assertEqual([s["retailer"]["user_id"] for s in stores], [self.mid_id])

    def test_store_categories(self):
        self.assertEqual(self.client.get("/stores/categories").json()["data"], ["grocery", "pharmacy"])

    def test_service_takes_a_fixed_clock(self):
        monday_8am = datetime(2024, 5, 13, 8, 0)
        with SessionLocal() as db:
            self.add_store(self.mid_token, "Mid Pharmacy 2", "pharmacy", WARSAW[0] + 0.002, WARSAW[1], WEEKDAYS_ONLY)
            results = LocationService(db).nearby_stores(*WARSAW, category="pharmacy", at=monday_8am)

        closed = results[0]
        self.assertEqual(closed["location"].store_name, "Mid Pharmacy 2")
        self.assertFalse(closed["is_open"])
        self.assertEqual(closed["next_opening"], {"day": "Monday", "time": "09:00"})


class LocationTests(ApiTestCase):
    def setUp(self):
        super().setUp()
        self.token, self.customer_id = self.register_customer()

    def add(self, **fields):
        body = {"street": "Marszalkowska 1", "city": "Warsaw", **fields}
        return self.client.post("/customers/locations", json=body, headers=self.auth(self.token))

    def locations(self):
        return self.client.get("/customers/locations", headers=self.auth(self.token)).json()["data"]

    def test_address_is_geocoded_when_coordinates_are_missing(self):
        resp = self.add(label="home", postal_code="00-001")

        self.assertEqual(resp.status_code, 201, resp.text)
        data = resp.json()["data"]
        self.assertEqual((data["latitude"], data["longitude"]), WARSAW)
        self.assertEqual(self.geocoder.calls, ["Marszalkowska 1, Warsaw, 00-001"])
        self.assertTrue(data["is_default"])
        self.assertEqual(data["owner_type"], "customer")

    def test_given_coordinates_skip_the_geocoder(self):
        data = self.add(latitude=50.0, longitude=19.9).json()["data"]
        self.assertEqual((data["latitude"], data["longitude"]), (50.0, 19.9))
        self.assertEqual(self.geocoder.calls, [])

    def test_half_a_coordinate_pair_is_rejected(self):
        self.assertEqual(self.add(latitude=50.0).status_code, 422)

    def test_only_one_default(self):
        first = self.add(label="home").json()["data"]
        second = self.add(label="work", is_default=True).json()["data"]

        defaults = {loc["id"]: loc["is_default"] for loc in self.locations()}
        self.assertEqual(defaults, {first["id"]: False, second["id"]: True})

    def test_deleting_default_promotes_another(self):
        first = self.add(label="home").json()["data"]
        second = self.add(label="work").json()["data"]

        resp = self.client.delete(f"/customers/locations/{first['id']}", headers=self.auth(self.token))

        self.assertEqual(resp.status_code, 200)
        remaining = self.locations()
        self.assertEqual([(loc["id"], loc["is_default"]) for loc in remaining], [(second["id"], True)])

    def test_moving_the_address_geocodes_again(self):
        location = self.add(latitude=50.0, longitude=19.9).json()["data"]

        resp = self.client.put(
            f"/customers/locations/{location['id']}", json={"street": "Nowy Swiat 5"}, headers=self.auth(self.token)
        )

        self.assertEqual(resp.status_code, 200, resp.text)
        self.assertEqual(resp.json()["data"]["latitude"], WARSAW[0])
        self.assertEqual(self.geocoder.calls, ["Nowy Swiat 5, Warsaw"])

    def test_label_change_keeps_coordinates(self):
        location = self.add(latitude=50.0, longitude=19.9).json()["data"]

        data = self.client.put(
            f"/customers/locations/{location['id']}", json={"label": "gym"}, headers=self.auth(self.token)
        ).json()["data"]

        self.assertEqual(data["label"], "gym")
        self.assertEqual(data["latitude"], 50.0)
        self.assertEqual(self.geocoder.calls, [])

    def test_store_fields_on_customer_address(self):
        location = self.add().json()["data"]
        resp = self.client.put(
            f"/customers/locations/{location['id']}", json={"store_name": "Mine"}, headers=self.auth(self.token)
        )
        self.assertEqual(resp.status_code, 400)

    def test_other_customers_locations_are_invisible(self):
        location = self.add().json()["data"]
        bob_token, _ = self.register_customer("bob@example.com")

        resp = self.client.delete(f"/customers/locations/{location['id']}", headers=self.auth(bob_token))

        self.assertEqual(resp.status_code, 404)
        self.assertEqual(len(self.locations()), 1)


class StorePageTests(ApiTestCase):
    def setUp(self):
        super().setUp()
        self.shop_token, self.shop_id = self.register_retailer()
        self.token, _ = self.register_customer()

    def test_details_and_search(self):
        details = self.client.get(f"/stores/{self.shop_id}").json()["data"]
        self.assertEqual(details["retailer"]["business_name"], "Corner Shop")
        self.assertEqual(details["locations"], [])

        page = self.client.get("/stores/search?q=corner").json()["data"]
        self.assertEqual([r["user_id"] for r in page["items"]], [self.shop_id])
        self.assertEqual(self.client.get("/stores/search?q=nothing").json()["data"]["total"], 0)
        self.assertEqual(self.client.get("/stores/999").status_code, 404)

    def test_favorites(self):
        for _ in range(2):
            resp = self.client.post(f"/stores/{self.shop_id}/favorite", headers=self.auth(self.token))
            self.assertEqual(resp.status_code, 200)

        favorites = self.client.get("/customers/favorites", headers=self.auth(self.token)).json()["data"]
        self.assertEqual([r["user_id"] for r in favorites], [self.shop_id])

        self.assertEqual(self.client.delete(f"/stores/{self.shop_id}/favorite", headers=self.auth(self.token)).status_code, 200)
        self.assertEqual(self.client.delete(f"/stores/{self.shop_id}/favorite", headers=self.auth(self.token)).status_code, 404)
        self.assertEqual(self.client.post("/stores/999/favorite", headers=self.auth(self.token)).status_code, 404)

    def test_reviews_update_the_rating(self):
        bob_token, _ = self.register_customer("bob@example.com")
        self.client.post(f"/stores/{self.shop_id}/reviews", json={"rating": 5, "comment": "great"}, headers=self.auth(self.token))
        resp = self.client.post(f"/stores/{self.shop_id}/reviews", json={"rating": 4}, headers=self.auth(bob_token))
        self.assertEqual(resp.status_code, 201, resp.text)

        retailer = self.client.get(f"/stores/{self.shop_id}").json()["data"]["retailer"]
        self.assertEqual(retailer["average_rating"], 4.5)
        self.assertEqual(retailer["total_ratings"], 2)

        page = self.client.get(f"/stores/{self.shop_id}/reviews").json()["data"]
        self.assertEqual(page["total"], 2)
        self.assertEqual(page["items"][0]["rating"], 4)

    def test_rating_out_of_range(self):
        resp = self.client.post(f"/stores/{self.shop_id}/reviews", json={"rating": 6}, headers=self.auth(self.token))
        self.assertEqual(resp.status_code, 422)

    def test_retailers_cannot_review(self):
        resp = self.client.post(f"/stores/{self.shop_id}/reviews", json={"rating": 5}, headers=self.auth(self.shop_token))
        self.assertEqual(resp.status_code, 403)


if __name__ == "__main__":
    unittest.main()
