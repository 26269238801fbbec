"""Tests for the end-to-end indexing pipeline."""

import asyncio
import json

import cv2
import numpy as np
import pytest

from palette_search.catalog import Catalog, load_catalog
from palette_search.config import SearchConfig, SearchContext
from palette_search.engine import QueryEngine
from palette_search.errors import PoolFull
from palette_search.index_builder import build_index, run_indexing
from palette_search.store import JsonDirectoryStore, MemoryStore


def red_paths(context, category):
    entry = context.store.read(category)
    return [im["image"]["path"] for im in entry["images"] if im["class"] == "red"]


class TestRunIndexing:
    """Tests for run_indexing / build_index."""

    def test_indexes_all_images(self, context, provider_cls, landmark_images):
        report = run_indexing(context, provider_cls(landmark_images))
        assert report["success"]
        assert not report["skipped"]
        assert report["processed"] == 6
        assert report["failed"] == 0
        assert report["categories"] == 2
        assert context.store.keys() == ["eiffel tower", "taj mahal"]
        assert red_paths(context, "eiffel tower") == ["eiffel/2.jpg", "eiffel/3.jpg"]

    def test_decode_failure_skips_image(self, context, provider_cls, landmark_images):
        provider = provider_cls(landmark_images, broken={"eiffel/2.jpg"})
        report = run_indexing(context, provider)
        assert report["success"]
        assert report["processed"] == 5
        assert report["failed"] == 1
        assert red_paths(context, "eiffel tower") == ["eiffel/3.jpg", "eiffel/1.jpg"]

    def test_already_indexed_store_is_left_alone(self, context, provider_cls, landmark_images):
        run_indexing(context, provider_cls(landmark_images))
        before = {k: context.store.read(k) for k in context.store.keys()}

        provider = provider_cls({})
        report = run_indexing(context, provider)
        assert report["skipped"]
        assert provider.calls == []
        assert {k: context.store.read(k) for k in context.store.keys()} == before

    def test_pool_overflow_propagates(self, landmark_catalog, provider_cls, landmark_images):
        context = SearchContext(
            config=SearchConfig(pool_capacity=3),
            store=MemoryStore(),
            catalog=landmark_catalog,
        )
        with pytest.raises(PoolFull):
            run_indexing(context, provider_cls(landmark_images))
        assert context.store.is_empty()

    def test_all_failures_builds_nothing(self, context, provider_cls):
        report = run_indexing(context, provider_cls({}))
        assert not report["success"]
        assert report["failed"] == 6
        assert context.store.is_empty()

    def test_progress_reported_per_image(self, context, provider_cls, landmark_images):
        calls = []
        run_indexing(
            context,
            provider_cls(landmark_images, broken={"taj/1.jpg"}),
            progress=lambda done, total: calls.append((done, total)),
        )
        assert calls == [(i, 6) for i in range(1, 7)]

    def test_achievable_count_with_failures(self, provider_cls):
        images = {f"img{i}.jpg": np.zeros((1, 2, 3), dtype=np.uint8) for i in range(1200)}
        catalog = Catalog.from_dict({"images": [
            {"path": path, "class": "stonehenge"} for path in images
        ]})
        context = SearchContext(
            config=SearchConfig(pool_capacity=5000, max_concurrency=64),
            store=MemoryStore(),
            catalog=catalog,
        )
        broken = {"img5.jpg", "img500.jpg", "img1199.jpg"}
        report = run_indexing(context, provider_cls(images, broken=broken))
        assert report["processed"] == 1197
        assert report["failed"] == 3
        assert not context.store.is_empty()

    def test_out_of_order_completion(self, context, landmark_images):
        delays = {"eiffel/2.jpg": 0.03, "eiffel/1.jpg": 0.01}

        class SlowProvider:
            async def load(self, path):
                await asyncio.sleep(delays.get(path, 0))
                return landmark_images[path]

        report = asyncio.run(build_index(context, SlowProvider()))
        assert report["processed"] == 6
        assert red_paths(context, "eiffel tower") == ["eiffel/2.jpg", "eiffel/3.jpg"]


class TestIndexingFromDisk:
    """Pipeline driven by a catalog file and real image files."""

    def test_catalog_relative_paths(self, tmp_path, red_square_image):
        blue = np.zeros((50, 50, 3), dtype=np.uint8)
        blue[:, :] = (0, 0, 255)
        (tmp_path / "img").mkdir()
        cv2.imwrite(str(tmp_path / "img" / "red.png"),
                    cv2.cvtColor(red_square_image, cv2.COLOR_RGB2BGR))
        cv2.imwrite(str(tmp_path / "img" / "blue.png"),
                    cv2.cvtColor(blue, cv2.COLOR_RGB2BGR))
        catalog_path = tmp_path / "database.json"
        catalog_path.write_text(json.dumps({"images": [
            {"path": "img/red.png", "class": "stonehenge", "dominantcolor": "#red"},
            {"path": "img/blue.png", "class": "stonehenge", "dominantcolor": "#blue"},
            {"path": "img/missing.png", "class": "stonehenge", "dominantcolor": "#blue"},
        ]}))

        context = SearchContext(
            store=JsonDirectoryStore(str(tmp_path / "index")),
            catalog=load_catalog(str(catalog_path)),
        )
        report = run_indexing(context)
        assert report["processed"] == 2
        assert report["failed"] == 1

        engine = QueryEngine(context)
        assert engine.search_color("stonehenge", "red")[0] == "img/red.png"
        assert engine.search_color("stonehenge", "blue")[0] == "img/blue.png"
        assert engine.search("#blue") == ["img/blue.png", "img/missing.png"]


class TestFailureIsolation:
    """One bad image never stops the rest of the corpus."""

    def test_unusable_buffer_skipped(self, context, provider_cls, landmark_images):
        images = dict(landmark_images)
        images["eiffel/2.jpg"] = np.array([["x", "y", "z"]])
        report = run_indexing(context, provider_cls(images))
        assert report["success"]
        assert report["processed"] == 5
        assert report["failed"] == 1
        assert red_paths(context, "eiffel tower") == ["eiffel/3.jpg", "eiffel/1.jpg"]

    def test_provider_runtime_error_skipped(self, context, landmark_images):
        class CrashingProvider:
            async def load(self, path):
                if path == "taj/1.jpg":
                    raise RuntimeError("decoder crashed")
                return landmark_images[path]

        report = run_indexing(context, CrashingProvider())
        assert report["processed"] == 5
        assert report["failed"] == 1
        assert "taj/1.jpg" not in red_paths(context, "taj mahal")


class TestUncategorisedImages:
    """Images without a class are indexed under the empty category."""

    def test_classless_image_found_by_color_fan_out(self, tmp_path, provider_cls):
        catalog = Catalog.from_dict({"images": [{"path": "a.jpg"}]})
        context = SearchContext(
            store=JsonDirectoryStore(str(tmp_path / "index")),
            catalog=catalog,
            categories=(),
        )
        red = np.zeros((2, 2, 3), dtype=np.uint8)
        red[:, :] = (204, 0, 0)
        provider = provider_cls({"a.jpg": red})

        report = run_indexing(context, provider)
        assert report["categories"] == 1
        assert not context.store.is_empty()
        assert context.store.keys() == [""]
        assert QueryEngine(context).search_color("", "red") == ["a.jpg"]

        again = run_indexing(context, provider_cls({}))
        assert again["skipped"]
