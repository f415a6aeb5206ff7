import unittest

from support import CatalogTestCase

from streamfeed.models.content import Content
from streamfeed.services.catalog import top_genres


def _content(*genres):
    content = Content(ext_id="x", title="x", type="Movie")
    content.genres = list(genres)
    return content


class TestTopGenres(unittest.TestCase):
    def test_counts_rank_first_then_first_seen_order(self):
        liked = [_content("Drama", "Crime"), _content("Comedy", "Crime"), _content("Drama")]
        self.assertEqual(top_genres(liked), ["Drama", "Crime", "Comedy"])

    def test_keeps_at_most_five(self):
        liked = [_content("a", "b", "c"), _content("d", "e", "f")]
        self.assertEqual(top_genres(liked), ["a", "b", "c", "d", "e"])


class TestRecommendations(CatalogTestCase):
    def setUp(self):
        super().setUp()
        self.make_content("m1", "Liked Drama", genres=["Drama"], likes=9)
        self.make_content("m2", "Another Drama", genres=["Drama"], likes=4)
        self.make_content("m3", "Comedy", genres=["Comedy"], likes=7)
        self.make_content("m4", "Crime Drama", genres=["Crime", "Drama"], likes=1)

    def _recommend(self, client, **params):
        resp = client.get("/recommendations", params={"profileId": "p1", **params})
        self.assertEqual(resp.status_code, 200)
        return resp.json()["items"]

    def test_cold_profile_gets_most_popular(self):
        items = self._recommend(self.client())
        self.assertEqual([i["extId"] for i in items], ["m1", "m3", "m2", "m4"])
        self.assertTrue(all(i["liked"] is False for i in items))

    def test_liked_content_is_never_recommended(self):
        client = self.client()
        client.post("/likes/toggle", json={"profileId": "p1", "contentExtId": "m1", "like": True})

        items = self._recommend(client)
        ids = [i["extId"] for i in items]
        self.assertNotIn("m1", ids)
        self.assertEqual(ids, ["m2", "m4"])
        self.assertTrue(all(i["liked"] is False for i in items))

    def test_likes_without_genres_fall_back_to_all_unliked_content(self):
        self.make_content("m5", "Untagged", genres=[])
        client = self.client()
        client.post("/likes/toggle", json={"profileId": "p1", "contentExtId": "m5", "like": True})

        items = self._recommend(client)
        self.assertEqual([i["extId"] for i in items], ["m1", "m3", "m2", "m4"])
        self.assertTrue(all(i["liked"] is False for i in items))

    def test_offset_pages_through_candidates(self):
        items = self._recommend(self.client(), limit="2", offset="2")
        self.assertEqual([i["extId"] for i in items], ["m2", "m4"])

    def test_profile_is_required(self):
        resp = self.client().get("/recommendations")
        self.assertEqual(resp.status_code, 400)
        self.assertEqual(resp.json()["detail"], "profileId is required")


if __name__ == "__main__":
    unittest.main()
