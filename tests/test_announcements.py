"""Tests for one-shot distance announcements."""

from campusnav.announcements import ARRIVAL_MESSAGE, AnnouncementPolicy, threshold_message


def fired(policy, distances):
    """Feed distances in order, return what each fired (threshold, 'arrival' or None)"""
    result = []
    for d in distances:
        announcement = policy.evaluate(d)
        if announcement is None:
            result.append(None)
        elif announcement.kind == "arrival":
            result.append("arrival")
        else:
            result.append(announcement.threshold)
    return result


class TestAnnouncementPolicy:
    """Tests for the descending-threshold rule."""

    def test_monotonic_descent(self):
        """Each threshold should fire once, in order, then arrival."""
        policy = AnnouncementPolicy()
        assert fired(policy, [600, 480, 190, 90, 40, 20, 8]) == [
            None, 500, 200, 100, 50, 25, "arrival",
        ]

    def test_same_distance_twice_fires_once(self):
        """Repeating a distance should not repeat its announcement."""
        policy = AnnouncementPolicy()
        assert fired(policy, [480, 480]) == [500, None]

    def test_far_away_is_silent(self):
        """Distances beyond the largest threshold should fire nothing."""
        policy = AnnouncementPolicy()
        assert fired(policy, [1200, 800, 501]) == [None, None, None]
        assert policy.last_announced_threshold is None

    def test_jump_fires_thresholds_in_descending_order(self):
        """Skipping past several thresholds fires them one per update, largest first."""
        policy = AnnouncementPolicy()
        assert fired(policy, [90]) == [500]
        assert fired(policy, [90]) == [200]

    def test_moving_away_does_not_refire(self):
        """Walking back out past a fired threshold should stay silent."""
        policy = AnnouncementPolicy()
        assert fired(policy, [190, 150, 300, 450]) == [500, 200, None, None]

    def test_arrival_fires_once(self):
        """Arrival should fire exactly once and silence the policy."""
        policy = AnnouncementPolicy()
        assert fired(policy, [8, 5, 3]) == ["arrival", None, None]
        assert policy.arrived

    def test_arrival_is_terminal(self):
        """After arrival, no threshold fires even when moving away."""
        policy = AnnouncementPolicy()
        fired(policy, [5])
        assert fired(policy, [40, 150, 450]) == [None, None, None]

    def test_reset_allows_sequence_again(self):
        """reset() should let the whole sequence fire again."""
        policy = AnnouncementPolicy()
        fired(policy, [450, 190])
        policy.reset()
        assert policy.last_announced_threshold is None
        assert fired(policy, [450, 190]) == [500, 200]

    def test_custom_thresholds(self):
        """Thresholds should be sorted descending regardless of input order."""
        policy = AnnouncementPolicy(thresholds=[50, 300], arrival_radius=5)
        assert fired(policy, [250, 40, 4]) == [300, 50, "arrival"]


class TestMessages:
    """Tests for canned announcement text."""

    def test_threshold_text(self):
        """Distant thresholds name the distance."""
        assert threshold_message(200) == "In 200 meters, you will reach your destination"

    def test_closest_threshold_text(self):
        """The last threshold before arrival says almost there."""
        assert threshold_message(25) == "You are almost at your destination"

    def test_arrival_text(self):
        """Arrival has its own message."""
        announcement = AnnouncementPolicy().evaluate(3)
        assert announcement.text == ARRIVAL_MESSAGE
