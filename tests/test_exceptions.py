"""
Tests for the structured exception hierarchy.
"""

from idea_packager.infrastructure.exceptions import (
    ArtifactBuildError,
    ConfigurationError,
    MappingError,
    PackagerException,
    PluginDescriptorError,
    PluginIndexError,
    WrongIndexVersionError,
)


class TestPackagerExceptions:
    """Test error codes, context and serialization."""

    def test_to_dict(self):
        cause = OSError("disk full")
        error = ArtifactBuildError("write failed", source="a", destination="lib/a.jar", cause=cause)

        data = error.to_dict()
        assert data["error_type"] == "ArtifactBuildError"
        assert data["error_code"] == "ARTIFACT_BUILD_ERROR"
        assert data["context"] == {"source": "a", "destination": "lib/a.jar"}
        assert data["cause"] == "disk full"
        assert data["correlation_id"]

    def test_hierarchy(self):
        for error in (
            ConfigurationError("c"),
            PluginDescriptorError("d"),
            PluginIndexError("i"),
            MappingError("m"),
            ArtifactBuildError("a"),
        ):
            assert isinstance(error, PackagerException)

    def test_wrong_index_version(self):
        error = WrongIndexVersionError(1, 2)
        assert isinstance(error, PluginIndexError)
        assert error.file_version == 1
        assert error.context == {"file_version": 1, "current_version": 2}
        assert str(error) == "Index version in file 1 is different from current 2"

    def test_configuration_error_code_override(self):
        error = ConfigurationError("missing", config_path="x.yaml", error_code="CONFIG_FILE_NOT_FOUND")
        assert error.error_code == "CONFIG_FILE_NOT_FOUND"
        assert error.context == {"config_path": "x.yaml"}

    def test_explicit_correlation_id(self):
        assert MappingError("m", project="p", correlation_id="abc").correlation_id == "abc"
