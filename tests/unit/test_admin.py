import unittest
from unittest import mock

from support import ADMIN_HEADERS, CatalogTestCase

from streamfeed.core.errors import ValidationError
from streamfeed.services.admin import compute_next_ext_id


class TestNextExtId(CatalogTestCase):
    def test_next_id_follows_highest_numeric_suffix(self):
        self.make_content("m1", "One")
        self.make_content("m3", "Three")
        self.make_content("x9", "Odd one")
        self.make_content("s7", "Show", type="Series")

        self.assertEqual(compute_next_ext_id(self.db, "Movie"), "m4")
        self.assertEqual(compute_next_ext_id(self.db, "series"), "s8")

    def test_empty_catalog_starts_at_one(self):
        self.assertEqual(compute_next_ext_id(self.db, "Series"), "s1")

    def test_unsupported_type(self):
        with self.assertRaises(ValidationError):
            compute_next_ext_id(self.db, "Documentary")

    def test_endpoint(self):
        self.make_content("M2", "Upper")
        resp = self.client().get("/admin/next-ext-id", params={"type": "movie"}, headers=ADMIN_HEADERS)
        self.assertEqual(resp.json(), {"type": "Movie", "extId": "m3"})


class TestAdminAuth(CatalogTestCase):
    def test_token_is_required(self):
        client = self.client()
        self.assertEqual(client.get("/admin/content").status_code, 403)
        self.assertEqual(
            client.get("/admin/content", headers={"X-Admin-Token": "wrong"}).status_code, 403
        )
        self.assertEqual(client.get("/admin/content", headers=ADMIN_HEADERS).status_code, 200)


class TestAdminContent(CatalogTestCase):
    def _save(self, client, **body):
        return client.post("/admin/content", json=body, headers=ADMIN_HEADERS)

    def test_create_assigns_id_and_syncs_seed(self):
        client = self.client()
        resp = self._save(
            client,
            title="Arrival",
            year=2016,
            genres="Drama, Sci-Fi",
            type="movie",
            imagePath="/uploads/arrival.jpg",
            videoPath="/uploads/arrival.mp4",
        )
        self.assertEqual(resp.status_code, 200)
        body = resp.json()
        self.assertEqual(body["action"], "created")
        self.assertEqual(body["data"]["extId"], "m1")
        self.assertEqual(body["data"]["genres"], ["Drama", "Sci-Fi"])
        self.assertEqual(body["data"]["type"], "Movie")

        [entry] = self.read_seed()
        self.assertEqual(entry["id"], "m1")
        self.assertEqual(entry["videoPath"], "/uploads/arrival.mp4")

    def test_update_keeps_likes(self):
        self.make_content("m1", "Old", genres=["Drama"], likes=4, year=2000)
        resp = self._save(self.client(), extId="m1", title="New", year=2001, genres=["Drama"], type="Movie")

        self.assertEqual(resp.json()["action"], "updated")
        stored = self.reload("m1")
        self.assertEqual((stored.title, stored.year, stored.likes), ("New", 2001, 4))

    def test_new_movie_needs_media(self):
        resp = self._save(self.client(), title="No files", year=2020, genres="Drama", type="Movie")
        self.assertEqual(resp.status_code, 400)
        self.assertEqual(resp.json()["detail"], "Image and Video files are required when creating a Movie.")

    def test_new_series_needs_image_only(self):
        client = self.client()
        resp = self._save(client, title="Show", year=2020, genres="Drama", type="Series")
        self.assertEqual(resp.json()["detail"], "Image file is required when creating a Series.")

        resp = self._save(client, title="Show", year=2020, genres="Drama", type="Series", imagePath="/img/s.jpg")
        self.assertEqual(resp.json()["data"]["extId"], "s1")

    def test_required_fields(self):
        resp = self._save(self.client(), title="Only title")
        self.assertEqual(resp.status_code, 400)
        self.assertEqual(resp.json()["detail"], "All text fields are required (title, year, genres, type).")

    def test_seed_write_failure_is_reported(self):
        with mock.patch.object(self.reconciler, "write", side_effect=OSError("read-only")):
            resp = self._save(
                self.client(), title="T", year=2020, genres="Drama", type="Series", imagePath="/img/t.jpg"
            )
        self.assertEqual(resp.status_code, 500)
        self.assertEqual(resp.json()["detail"], "Content saved but failed to sync content.json. Please retry.")
        self.assertIsNotNone(self.reload("s1"))

    def test_list_and_get(self):
        self.make_content("m2", "Beta")
        self.make_content("m1", "alpha")
        self.make_content(
            "s1", "Gamma", type="Series", episodes=[(2, 1, "/v/b.mp4"), (1, 1, "/v/a.mp4")]
        )
        client = self.client()

        data = client.get("/admin/content", headers=ADMIN_HEADERS).json()["data"]
        self.assertEqual([d["extId"] for d in data], ["m2", "s1", "m1"])
        data = client.get("/admin/content", params={"type": "series"}, headers=ADMIN_HEADERS).json()["data"]
        self.assertEqual(data, [{"extId": "s1", "title": "Gamma", "type": "Series"}])

        item = client.get("/admin/content/s1", headers=ADMIN_HEADERS).json()["data"]
        self.assertEqual([(e["season"], e["episode"]) for e in item["episodes"]], [(1, 1), (2, 1)])
        self.assertEqual(client.get("/admin/content/zz", headers=ADMIN_HEADERS).status_code, 404)


class TestAdminDelete(CatalogTestCase):
    def _delete(self, client, **body):
        return client.request("DELETE", "/admin/content", json=body, headers=ADMIN_HEADERS)

    def test_delete_by_title_is_case_insensitive(self):
        self.make_content("m1", "The Movie", genres=["Drama"])
        self.write_seed([{"id": "m1", "title": "The Movie"}, {"id": "m2", "title": "Other"}])

        resp = self._delete(self.client(), type="Movie", title="the movie")
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.json()["deleted"]["extId"], "m1")
        self.assertIsNone(self.reload("m1"))
        self.assertEqual([e["id"] for e in self.read_seed()], ["m2"])

    def test_identifier_rules(self):
        client = self.client()
        self.assertEqual(
            self._delete(client, type="Movie").json()["detail"], "Provide either an External ID or a title."
        )
        self.assertEqual(
            self._delete(client, type="Movie", extId="m1", title="x").json()["detail"],
            "Choose only one identifier: title or External ID.",
        )
        self.assertEqual(
            self._delete(client, extId="m1").json()["detail"], "Type is required (Movie or Series)."
        )
        self.assertEqual(self._delete(client, type="Movie", extId="m1").status_code, 404)

    def test_type_must_match(self):
        self.make_content("s1", "Show", type="Series")
        self.assertEqual(self._delete(self.client(), type="Movie", extId="s1").status_code, 404)


class TestAdminEpisodes(CatalogTestCase):
    def _upsert(self, client, **body):
        return client.post("/admin/episodes", json=body, headers=ADMIN_HEADERS)

    def test_episode_is_added_in_order_and_synced(self):
        self.make_content("s1", "Show", type="Series", episodes=[(1, 2, "/v/2.mp4")])
        client = self.client()

        resp = self._upsert(client, seriesExtId="s1", season=1, episode=1, videoPath="/v/1.mp4")
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.json()["episode"]["title"], "Episode 1")

        stored = self.reload("s1")
        self.assertEqual([(e.season, e.episode) for e in stored.episodes], [(1, 1), (1, 2)])
        [entry] = self.read_seed()
        self.assertEqual([(e["season"], e["episode"]) for e in entry["episodes"]], [(1, 1), (1, 2)])

    def test_same_number_replaces(self):
        self.make_content("s1", "Show", type="Series", episodes=[(1, 1, "/v/old.mp4")])

        self._upsert(self.client(), seriesExtId="s1", season=1, episode=1, videoPath="/v/new.mp4", title="Pilot")
        [episode] = self.reload("s1").episodes
        self.assertEqual((episode.video_path, episode.title), ("/v/new.mp4", "Pilot"))

    def test_target_checks(self):
        self.make_content("m1", "Movie")
        client = self.client()
        self.assertEqual(
            self._upsert(client, seriesExtId="zz", season=1, episode=1, videoPath="/v/a.mp4").status_code, 404
        )
        resp = self._upsert(client, seriesExtId="m1", season=1, episode=1, videoPath="/v/a.mp4")
        self.assertEqual(resp.status_code, 400)
        self.assertEqual(resp.json()["detail"], "Target content is not a Series")
        resp = self._upsert(client, seriesExtId="m1", season=1, episode=1)
        self.assertEqual(resp.json()["detail"], "seriesExtId, season, episode and videoPath are required")


class TestRepairMediaPaths(CatalogTestCase):
    def test_counts_repairs(self):
        self.touch("v/1.mp4")
        self.make_content("s1", "Show", type="Series", episodes=[(1, 1, "/v/1.mp4"), (1, 2, "/v/2.mp4")])
        self.make_content("m1", "Movie", video_path="/v/gone.mp4")
        self.make_content("m2", "Fine")

        resp = self.client().post("/admin/repair-media-paths", headers=ADMIN_HEADERS)
        self.assertEqual(
            resp.json(),
            {"ok": True, "scanned": 3, "repaired": 2, "episodesDropped": 1, "fieldsCleared": 1},
        )
        self.assertIsNone(self.reload("m1").video_path)


if __name__ == "__main__":
    unittest.main()
