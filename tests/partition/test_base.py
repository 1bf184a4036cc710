"""Tests for the partitioner contract helpers and format dispatch."""

import pytest

from geo_partition.errors import ConfigurationError
from geo_partition.partition import (
    FeaturePartitioner,
    TextPartitioner,
    get_partitioner,
)
from geo_partition.partition.base import validate_num_partitions
from geo_partition.partition.encoding import EncodingPolicy


class TestGetPartitioner:
    """Test cases for get_partitioner."""

    @pytest.mark.parametrize("kind", ["text", "CSV", " csv "])
    def test_text_kinds(self, kind: str) -> None:
        assert isinstance(get_partitioner(kind), TextPartitioner)

    @pytest.mark.parametrize("kind", ["feature", "shapefile", "GeoPackage", "geojson"])
    def test_feature_kinds(self, kind: str) -> None:
        assert isinstance(get_partitioner(kind), FeaturePartitioner)

    def test_passes_options(self) -> None:
        text = get_partitioner("csv", delimiter="|", quotechar="'")
        feature = get_partitioner("shapefile", policy="fail")

        assert (text.delimiter, text.quotechar) == ("|", "'")
        assert feature.policy is EncodingPolicy.FAIL

    def test_unknown_kind(self) -> None:
        with pytest.raises(ConfigurationError):
            get_partitioner("osm_pbf")


class TestValidateNumPartitions:
    """Test cases for the partition-count policy."""

    def test_accepts_positive(self) -> None:
        assert validate_num_partitions(3) == 3

    @pytest.mark.parametrize("value", [0, -1, 2.5, True, "4"])
    def test_rejects_invalid(self, value) -> None:
        with pytest.raises(ConfigurationError):
            validate_num_partitions(value)
