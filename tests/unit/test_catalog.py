import unittest

from support import CatalogTestCase

from streamfeed.core.errors import InvalidRange, InvalidYear
from streamfeed.models.log import Log
from streamfeed.services import catalog


class TestFeed(CatalogTestCase):
    def test_rating_sort_skips_unrated_and_never_increases(self):
        self.make_content("m1", "Alpha", rating_value=7.5)
        self.make_content("m2", "Bravo")
        self.make_content("m3", "Charlie", rating_value=9.1)
        self.make_content("m4", "Delta", rating_value=8.0)

        resp = self.client().get("/feed", params={"sort": "rating"})
        self.assertEqual(resp.status_code, 200)
        ratings = [item["ratingValue"] for item in resp.json()["items"]]
        self.assertEqual(ratings, [9.1, 8.0, 7.5])

    def test_popular_sort_breaks_ties_by_title(self):
        self.make_content("m1", "Zulu", likes=2)
        self.make_content("m2", "Echo", likes=2)
        self.make_content("m3", "Kilo", likes=5)

        items = self.client().get("/feed").json()["items"]
        self.assertEqual([i["title"] for i in items], ["Kilo", "Echo", "Zulu"])

    def test_newest_sort_puts_missing_years_last(self):
        self.make_content("m1", "Old", year=1990)
        self.make_content("m2", "Unknown")
        self.make_content("m3", "New", year=2020)

        items = self.client().get("/feed", params={"sort": "newest"}).json()["items"]
        self.assertEqual([i["title"] for i in items], ["New", "Old", "Unknown"])

    def test_limit_zero_or_garbage_falls_back_to_default(self):
        for n in range(3):
            self.make_content(f"m{n}", f"Title {n}")
        client = self.client()

        self.assertEqual(len(client.get("/feed", params={"limit": "0"}).json()["items"]), 3)
        self.assertEqual(len(client.get("/feed", params={"limit": "abc"}).json()["items"]), 3)
        self.assertEqual(len(client.get("/feed", params={"limit": "1"}).json()["items"]), 1)
        self.assertEqual(len(client.get("/feed", params={"offset": "2"}).json()["items"]), 1)

    def test_limit_is_clamped(self):
        self.assertEqual(catalog.clamp_limit(1000, *catalog.FEED_LIMIT), 200)
        self.assertEqual(catalog.clamp_limit(None, *catalog.SIMILAR_LIMIT), 12)
        self.assertEqual(catalog.clamp_limit(-3, *catalog.RECOMMEND_LIMIT), 1)

    def test_absent_optionals_are_omitted(self):
        self.make_content("m1", "Plain", cover="https://cdn.example/plain.jpg")

        item = self.client().get("/feed").json()["items"][0]
        self.assertEqual(item["extId"], "m1")
        self.assertEqual(item["cover"], "https://cdn.example/plain.jpg")
        self.assertNotIn("rating", item)
        self.assertNotIn("liked", item)
        self.assertNotIn("tags", item)

    def test_profile_gets_liked_flags(self):
        self.make_content("m1", "Liked")
        self.make_content("m2", "Not liked")
        client = self.client()
        client.post("/likes/toggle", json={"profileId": "p1", "contentExtId": "m1", "like": True})

        items = client.get("/feed", params={"profileId": "p1"}).json()["items"]
        self.assertEqual({i["extId"]: i["liked"] for i in items}, {"m1": True, "m2": False})

    def test_reads_are_audited(self):
        self.client().get("/feed", params={"profileId": "p1", "sort": "alpha"})

        [entry] = self.db.query(Log).filter(Log.event == "feed").all()
        self.assertEqual(entry.profile_id, "p1")
        self.assertEqual(entry.details["sort"], "alpha")


class TestSearch(CatalogTestCase):
    def test_titles_are_unique_and_best_scored_copy_wins(self):
        self.make_content("m1", "Heat", likes=1)
        self.make_content("m2", "heat ", likes=5)
        self.make_content("m3", "Heathers", likes=0)

        items = self.client().get("/search", params={"query": "HEAT"}).json()["items"]
        titles = [i["title"].strip().lower() for i in items]
        self.assertEqual(len(titles), len(set(titles)))
        heat = next(i for i in items if i["title"].strip().lower() == "heat")
        self.assertEqual(heat["extId"], "m2")

    def test_dedupe_keeps_sorted_order(self):
        self.make_content("m1", "Same", rating_value=6.0)
        self.make_content("m2", "Other", rating_value=8.0)
        self.make_content("m3", "Same", rating_value=9.0)

        items = self.client().get("/search", params={"sort": "rating"}).json()["items"]
        self.assertEqual([i["extId"] for i in items], ["m3", "m2"])

    def test_filters_combine(self):
        self.make_content("s1", "Dark Waters", genres=["Drama"], type="Series", year=2015)
        self.make_content("m1", "Dark Knight", genres=["Action", "Drama"], year=2008)
        self.make_content("m2", "Dark Comedy", genres=["Comedy"], year=2015)

        params = {"query": "dark", "type": "movie", "genre": "dram", "year_from": "2000", "year_to": "2010"}
        body = self.client().get("/search", params=params).json()
        self.assertEqual([i["extId"] for i in body["items"]], ["m1"])
        self.assertEqual(body["query"]["type"], "movie")
        self.assertEqual(body["query"]["year_from"], 2000)
        self.assertEqual(body["query"]["genre"], "dram")

    def test_like_wildcards_match_literally(self):
        self.make_content("m1", "100% Wolf")
        self.make_content("m2", "100 Wolves")

        items = self.client().get("/search", params={"query": "100%"}).json()["items"]
        self.assertEqual([i["extId"] for i in items], ["m1"])

    def test_inverted_year_range_is_rejected(self):
        resp = self.client().get("/search", params={"year_from": "2010", "year_to": "2000"})
        self.assertEqual(resp.status_code, 400)
        self.assertEqual(resp.json()["detail"], "year_from must be <= year_to")

    def test_non_numeric_year_is_rejected(self):
        resp = self.client().get("/search", params={"year_from": "abc"})
        self.assertEqual(resp.status_code, 400)
        self.assertEqual(resp.json()["detail"], "Invalid year range")

    def test_service_raises_typed_errors(self):
        with self.assertRaises(InvalidRange):
            catalog.search(self.db, year_from="2020", year_to="2019")
        with self.assertRaises(InvalidYear):
            catalog.search(self.db, year_to="soon")


class TestSimilar(CatalogTestCase):
    def test_shares_a_genre_and_excludes_base(self):
        self.make_content("m1", "Base", genres=["Thriller"])
        self.make_content("m2", "Match", genres=["Drama", "Thriller"], likes=3)
        self.make_content("m3", "Other", genres=["Comedy"])

        items = self.client().get("/similar", params={"extId": "m1"}).json()["items"]
        self.assertEqual([i["extId"] for i in items], ["m2"])

    def test_base_without_genres_gives_nothing(self):
        self.make_content("m1", "Base")
        self.make_content("m2", "Any", genres=["Drama"])

        resp = self.client().get("/similar", params={"extId": "m1"})
        self.assertEqual(resp.json()["items"], [])

    def test_unknown_base_is_404(self):
        resp = self.client().get("/similar", params={"extId": "nope"})
        self.assertEqual(resp.status_code, 404)
        self.assertEqual(resp.json()["detail"], "Base content not found")

    def test_missing_ext_id_is_400(self):
        self.assertEqual(self.client().get("/similar").status_code, 400)


if __name__ == "__main__":
    unittest.main()
