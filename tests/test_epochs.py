"""Tests for epoch resolution."""

from marketplace.domain import epochs
from marketplace.domain.models import Addon, AddonVersion, Artifact, MavenCoordinates
from tests.factories import make_addon, make_epoch


def _two_epoch_addon() -> Addon:
    epoch4 = make_epoch("4.2.0", brxm_min="15.0.0", inferred_max="17.0.0")
    epoch5 = make_epoch("5.1.0", brxm_min="17.0.0")
    return make_addon("content-blocks", brxm_min="15.0.0", version="5.1.0", versions=[epoch4, epoch5])


class TestIsEpochCompatible:
    """Tests for is_epoch_compatible."""

    def test_inferred_max_is_exclusive(self) -> None:
        """Verify the next epoch's min is not part of the previous epoch."""
        epoch = make_epoch("4.2.0", brxm_min="15.0.0", inferred_max="17.0.0")

        assert epochs.is_epoch_compatible(epoch, "16.9.9")
        assert not epochs.is_epoch_compatible(epoch, "17.0.0")

    def test_explicit_max_is_inclusive(self) -> None:
        """Verify an authored max matches its own value."""
        epoch = make_epoch("3.0.0", brxm_min="14.0.0", brxm_max="16.6.5")

        assert epochs.is_epoch_compatible(epoch, "16.6.5")
        assert not epochs.is_epoch_compatible(epoch, "16.6.6")

    def test_explicit_max_wins_over_inferred_max(self) -> None:
        """Verify inferred_max is ignored when an explicit max exists."""
        epoch = make_epoch("3.0.0", brxm_min="14.0.0", brxm_max="16.6.5", inferred_max="16.0.0")

        assert epochs.is_epoch_compatible(epoch, "16.3.0")

    def test_below_min(self) -> None:
        """Verify versions below min do not match."""
        assert not epochs.is_epoch_compatible(make_epoch("4.0.0", brxm_min="15.0.0"), "14.7.3")

    def test_epoch_without_brxm_block(self) -> None:
        """Verify an epoch without compatibility never matches."""
        assert not epochs.is_epoch_compatible(AddonVersion(version="1.0.0"), "15.0.0")


class TestFindCompatibleEpoch:
    """Tests for find_compatible_epoch."""

    def test_boundary_selects_next_epoch(self) -> None:
        """Verify 17.0.0 resolves to epoch 5 and 16.9.9 to epoch 4."""
        addon = _two_epoch_addon()

        assert epochs.find_compatible_epoch(addon, "17.0.0").version == "5.1.0"
        assert epochs.find_compatible_epoch(addon, "16.9.9").version == "4.2.0"

    def test_no_match(self) -> None:
        """Verify None when no epoch covers the target."""
        assert epochs.find_compatible_epoch(_two_epoch_addon(), "14.0.0") is None

    def test_no_target_or_no_epochs(self) -> None:
        """Verify None for a missing target or an addon without epochs."""
        assert epochs.find_compatible_epoch(_two_epoch_addon(), None) is None
        assert epochs.find_compatible_epoch(make_addon("plain"), "15.0.0") is None


class TestInferMax:
    """Tests for infer_max and assemble_epochs."""

    def test_sets_inferred_max_from_next_min(self) -> None:
        """Verify an open epoch is capped by the next epoch's min."""
        result = epochs.infer_max([make_epoch("4.0.0", brxm_min="15.0.0"), make_epoch("5.0.0", brxm_min="17.0.0")])

        assert result[0].inferred_max == "17.0.0"
        assert result[1].inferred_max is None

    def test_explicit_max_is_left_alone(self) -> None:
        """Verify no inferred_max when the epoch has its own max."""
        result = epochs.infer_max(
            [make_epoch("4.0.0", brxm_min="15.0.0", brxm_max="16.6.5"), make_epoch("5.0.0", brxm_min="17.0.0")]
        )

        assert result[0].inferred_max is None

    def test_next_without_min_is_left_alone(self) -> None:
        """Verify no inferred_max when the next epoch has no min."""
        result = epochs.infer_max([make_epoch("4.0.0", brxm_min="15.0.0"), make_epoch("5.0.0", brxm_max="18.0.0")])

        assert result[0].inferred_max is None

    def test_assemble_keeps_latest_per_major(self) -> None:
        """Verify one epoch per major, latest release wins, ascending order."""
        candidates = [
            make_epoch("5.0.0", brxm_min="17.0.0"),
            make_epoch("4.1.0", brxm_min="15.0.0"),
            make_epoch("4.2.0", brxm_min="15.0.0"),
            make_epoch("5.1.0", brxm_min="17.0.0"),
            make_epoch("snapshot", brxm_min="16.0.0"),
        ]

        result = epochs.assemble_epochs(candidates)

        assert [e.version for e in result] == ["4.2.0", "5.1.0"]
        assert result[0].inferred_max == "17.0.0"


class TestEffectiveValues:
    """Tests for effective_version, effective_artifacts, recommended_version and describe_range."""

    def test_effective_version_prefers_epoch(self) -> None:
        """Verify the matching epoch's version is returned."""
        addon = _two_epoch_addon()

        assert epochs.effective_version(addon, "16.0.0") == "4.2.0"
        assert epochs.effective_version(addon, "14.0.0") == "5.1.0"
        assert epochs.effective_version(addon, None) == "5.1.0"

    def test_effective_artifacts_fall_back_to_addon(self) -> None:
        """Verify addon artifacts are used when the epoch has none."""
        addon_artifact = Artifact(type="maven-lib", maven=MavenCoordinates(group_id="g", artifact_id="a", version="5.1.0"))
        epoch_artifact = Artifact(type="maven-lib", maven=MavenCoordinates(group_id="g", artifact_id="a", version="4.2.0"))
        addon = _two_epoch_addon()
        addon.artifacts = [addon_artifact]
        addon.versions[0].artifacts = [epoch_artifact]

        assert epochs.effective_artifacts(addon, "16.0.0") == [epoch_artifact]
        assert epochs.effective_artifacts(addon, "17.5.0") == [addon_artifact]

    def test_recommended_version_only_when_different(self) -> None:
        """Verify no recommendation when the epoch is the latest release."""
        addon = _two_epoch_addon()

        assert epochs.recommended_version(addon, "16.0.0") == "4.2.0"
        assert epochs.recommended_version(addon, "17.0.0") is None

    def test_describe_range(self) -> None:
        """Verify ranges render as 'min - ceiling' or 'min+'."""
        addon = _two_epoch_addon()

        assert epochs.describe_range(addon, "16.0.0") == "15.0.0 - 17.0.0"
        assert epochs.describe_range(addon, "17.0.0") == "17.0.0+"
        assert epochs.describe_range(addon) == "15.0.0+"
        assert epochs.describe_range(make_addon("plain")) is None


class TestMatchesPlatformVersion:
    """Tests for matches_platform_version."""

    def test_uses_epochs_when_present(self) -> None:
        """Verify epoch ranges decide the match for multi-epoch addons."""
        addon = _two_epoch_addon()

        assert epochs.matches_platform_version(addon, "16.0.0")
        assert not epochs.matches_platform_version(addon, "14.0.0")

    def test_uses_addon_range_without_epochs(self) -> None:
        """Verify the addon's own range applies and a missing range matches."""
        assert epochs.matches_platform_version(make_addon("a", brxm_min="15.0.0", brxm_max="16.0.0"), "16.0.0")
        assert not epochs.matches_platform_version(make_addon("a", brxm_min="15.0.0", brxm_max="16.0.0"), "16.0.1")
        assert epochs.matches_platform_version(make_addon("b"), "1.0.0")
