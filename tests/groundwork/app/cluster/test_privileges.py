"""Tests for the privilege drop."""

from unittest.mock import call, patch

import pytest

from groundwork.app.cluster.privileges import drop_privileges, resolve_gid, resolve_uid
from groundwork.config import UserConfig
from groundwork.exceptions import LifecycleError


@pytest.mark.unit
class TestResolve:
    def test_numeric(self):
        assert resolve_uid(1000) == 1000
        assert resolve_uid("1000") == 1000
        assert resolve_gid("33") == 33

    def test_names(self):
        with patch("groundwork.app.cluster.privileges.pwd.getpwnam") as getpwnam:
            getpwnam.return_value.pw_uid = 501
            assert resolve_uid("www") == 501
        with patch("groundwork.app.cluster.privileges.grp.getgrnam") as getgrnam:
            getgrnam.return_value.gr_gid = 502
            assert resolve_gid("www") == 502

    def test_unknown_user(self):
        with patch(
            "groundwork.app.cluster.privileges.pwd.getpwnam", side_effect=KeyError("x")
        ):
            with pytest.raises(LifecycleError, match="unknown user"):
                resolve_uid("ghost")


@pytest.mark.unit
class TestDropPrivileges:
    def test_unconfigured_keeps_privileges(self):
        with patch("groundwork.app.cluster.privileges.os") as fake_os:
            assert drop_privileges(UserConfig()) is False
        fake_os.setuid.assert_not_called()
        fake_os.setgid.assert_not_called()

    def test_group_then_user(self):
        with patch("groundwork.app.cluster.privileges.os") as fake_os:
            assert drop_privileges(UserConfig(user_id=1000, group_id=100)) is True
        assert fake_os.mock_calls == [call.setgid(100), call.setuid(1000)]

    def test_user_only(self):
        with patch("groundwork.app.cluster.privileges.os") as fake_os:
            drop_privileges(UserConfig(user_id=1000))
        fake_os.setgid.assert_not_called()
        fake_os.setuid.assert_called_once_with(1000)

    def test_refused(self):
        with patch("groundwork.app.cluster.privileges.os") as fake_os:
            fake_os.setuid.side_effect = PermissionError("nope")
            with pytest.raises(LifecycleError, match="cannot switch user"):
                drop_privileges(UserConfig(user_id=1000))
