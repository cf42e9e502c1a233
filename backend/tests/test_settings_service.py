from __future__ import annotations

import pytest

from conftest import FakeRedis, RecordingSignals
from syndication.config import settings
from syndication.services.encryption_service import CredentialCipher
from syndication.services.scheduler import SchedulerService
from syndication.services.settings_service import (
    DEFAULT_SETTINGS,
    SettingsService,
    initialize,
    mask_secret,
    validate_and_normalize,
)

OPTION = "push_syndicate_settings"


class TestInitialize:
    @pytest.mark.parametrize(
        "persisted",
        [None, {}, {"pull_time_interval": "7200"}, {"legacy_flag": True}, "corrupt", ["x"]],
    )
    def test_every_default_key_resolves(self, persisted):
        document = initialize(persisted)
        for key in DEFAULT_SETTINGS:
            assert key in document

    def test_persisted_values_override_defaults(self):
        document = initialize({"delete_pushed_posts": "on"})
        assert document["delete_pushed_posts"] == "on"
        assert document["selected_post_types"] == ["post"]

    def test_unknown_persisted_keys_are_kept(self):
        document = initialize({"legacy_flag": "yes"})
        assert document["legacy_flag"] == "yes"

    def test_is_deterministic(self):
        persisted = {"selected_post_types": ["post", "page"], "extra": {"a": 1}}
        assert initialize(persisted) == initialize(persisted)

    def test_does_not_alias_input(self):
        persisted = {"selected_post_types": ["post"]}
        document = initialize(persisted)
        persisted["selected_post_types"].append("page")
        assert document["selected_post_types"] == ["post"]

    def test_default_interval(self):
        document = initialize({})
        assert document.get("pull_time_interval") == 3600
        assert document.pull_time_interval == 3600

    def test_absent_key_reads_as_none(self):
        assert initialize({}).get("no_such_setting") is None

    def test_legacy_string_interval(self):
        assert initialize({"pull_time_interval": "7200"}).pull_time_interval == 7200


class TestValidateAndNormalize:
    def test_interval_is_clamped(self):
        failures = []
        document = validate_and_normalize({"pull_time_interval": "120"}, failures)
        assert document["pull_time_interval"] == 300
        assert [f.code for f in failures] == ["clamped"]

    def test_interval_above_minimum_is_kept(self):
        assert validate_and_normalize({"pull_time_interval": "9000"})["pull_time_interval"] == 9000

    @pytest.mark.parametrize("value", [None, "", "soon", "nan", True])
    def test_invalid_interval_uses_default(self, value):
        assert validate_and_normalize({"pull_time_interval": value})["pull_time_interval"] == 3600

    def test_max_pull_attempts_clamped(self):
        assert validate_and_normalize({"push_syndication_max_pull_attempts": "500"})[
            "push_syndication_max_pull_attempts"
        ] == 100
        assert validate_and_normalize({"push_syndication_max_pull_attempts": "-3"})[
            "push_syndication_max_pull_attempts"
        ] == 0

    def test_toggles(self):
        document = validate_and_normalize({"delete_pushed_posts": "on", "update_pulled_posts": "maybe"})
        assert document["delete_pushed_posts"] == "on"
        assert document["update_pulled_posts"] == "off"

    def test_email_and_url(self):
        failures = []
        document = validate_and_normalize(
            {
                "notification_email": "alerts@newsroom.org",
                "notification_slack_webhook": "not a url",
            },
            failures,
        )
        assert document["notification_email"] == "alerts@newsroom.org"
        assert document["notification_slack_webhook"] == ""
        assert [(f.field, f.code) for f in failures] == [("notification_slack_webhook", "invalid_url")]

    def test_list_fields_keep_order_and_drop_duplicates(self):
        document = validate_and_normalize(
            {"selected_post_types": ["page", " post ", "page", "<b>news</b>"]}
        )
        assert document["selected_post_types"] == ["page", "post", "news"]

    def test_nested_list_items_are_rejected(self):
        failures = []
        document = validate_and_normalize({"notification_types": [["new"], "edit"]}, failures)
        assert document["notification_types"] == ["edit"]
        assert [(f.field, f.code) for f in failures] == [("notification_types", "invalid_item")]

    def test_list_field_with_depth_limit_zero(self, monkeypatch):
        monkeypatch.setattr(settings, "sanitizer_max_depth", 0)
        failures = []
        document = validate_and_normalize({"selected_post_types": ["post"]}, failures)
        assert document["selected_post_types"] == []
        assert [f.code for f in failures] == ["invalid_item"]

    def test_pull_sitegroups_are_key_normalized(self):
        document = validate_and_normalize({"selected_pull_sitegroups": ["Group-A", "group-a", "B"]})
        assert document["selected_pull_sitegroups"] == ["b", "group-a"]

    def test_unknown_keys_are_dropped(self):
        document = validate_and_normalize({"evil": "x", "client_credentials": "forged"})
        assert "evil" not in document
        assert "client_credentials" not in document

    def test_absent_fields_get_defaults(self):
        document = validate_and_normalize({})
        assert document["selected_post_types"] == []
        assert document["delete_pushed_posts"] == "off"
        assert document["pull_time_interval"] == 3600

    def test_non_mapping_input(self):
        failures = []
        document = validate_and_normalize(["not", "a", "form"], failures)
        assert document["pull_time_interval"] == 3600
        assert failures[0].code == "invalid_document"

    @pytest.mark.parametrize(
        "raw",
        [
            {},
            {"pull_time_interval": "120", "push_syndication_max_pull_attempts": "900"},
            {
                "client_id": "  <b>id</b> ",
                "selected_post_types": [["nested"], "post", "post"],
                "notification_methods": "email",
                "notification_email": "Ops@Newsroom.org",
                "notification_slack_webhook": "HTTPS://Hooks.Example.com/x y",
                "selected_pull_sitegroups": "Group-A",
                "delete_pushed_posts": True,
                "junk": {"deep": ["x"]},
            },
        ],
    )
    def test_is_idempotent(self, raw):
        once = validate_and_normalize(raw)
        assert validate_and_normalize(once) == once


@pytest.fixture
def service(option_store, cipher, signals) -> SettingsService:
    return SettingsService(option_store, cipher=cipher, signals=signals, option_name=OPTION)


class TestSettingsService:
    async def test_load_backfills_defaults(self, service, option_store):
        option_store.values[OPTION] = {"delete_pushed_posts": "on"}
        document = await service.load()
        assert document["delete_pushed_posts"] == "on"
        assert document.pull_time_interval == 3600

    async def test_save_replaces_whole_document(self, service, option_store):
        option_store.values[OPTION] = {"legacy_flag": "x", "delete_pushed_posts": "on"}
        await service.save({"update_pulled_posts": "on"})
        stored = option_store.values[OPTION]
        assert "legacy_flag" not in stored
        assert stored["delete_pushed_posts"] == "off"
        assert stored["update_pulled_posts"] == "on"
        assert option_store.writes == 1

    async def test_credentials_are_encrypted_at_rest(self, service, option_store, cipher):
        update = await service.save({"client_id": "my-client", "client_secret": "my-secret"})
        stored = option_store.values[OPTION]
        assert stored["client_id"] == ""
        assert stored["client_secret"] == ""
        assert "my-secret" not in str(stored)
        assert cipher.decrypt(stored["client_credentials"]) == {
            "client_id": "my-client",
            "client_secret": "my-secret",
        }
        assert service.credentials(update.document) == {
            "client_id": "my-client",
            "client_secret": "my-secret",
        }

    async def test_blank_credentials_keep_previous_token(self, service, option_store):
        await service.save({"client_id": "my-client", "client_secret": "my-secret"})
        token = option_store.values[OPTION]["client_credentials"]
        await service.save({"delete_pushed_posts": "on"})
        assert option_store.values[OPTION]["client_credentials"] == token

    async def test_rotating_one_secret_keeps_the_other(self, service):
        await service.save({"client_id": "my-client", "client_secret": "old-secret"})
        await service.save({"client_secret": "rotated-secret"})
        assert service.credentials(await service.load()) == {
            "client_id": "my-client",
            "client_secret": "rotated-secret",
        }

    async def test_masked_values_are_treated_as_unchanged(self, service, option_store):
        await service.save({"client_id": "my-client", "client_secret": "my-secret"})
        token = option_store.values[OPTION]["client_credentials"]
        await service.save(
            {"client_id": mask_secret("my-client"), "client_secret": mask_secret("my-secret")}
        )
        assert option_store.values[OPTION]["client_credentials"] == token
        assert service.credentials(await service.load()) == {
            "client_id": "my-client",
            "client_secret": "my-secret",
        }

    async def test_masked_id_with_new_secret(self, service):
        await service.save({"client_id": "my-client", "client_secret": "my-secret"})
        await service.save({"client_id": mask_secret("my-client"), "client_secret": "new-secret"})
        assert service.credentials(await service.load()) == {
            "client_id": "my-client",
            "client_secret": "new-secret",
        }

    async def test_legacy_plaintext_credentials_are_sealed(self, service, option_store):
        option_store.values[OPTION] = {"client_id": "old-id", "client_secret": "old-secret"}
        assert service.credentials(await service.load()) == {
            "client_id": "old-id",
            "client_secret": "old-secret",
        }
        await service.save({})
        stored = option_store.values[OPTION]
        assert stored["client_id"] == ""
        assert service.credentials(await service.load()) == {
            "client_id": "old-id",
            "client_secret": "old-secret",
        }

    async def test_unreadable_credentials_are_unavailable(self, option_store):
        writer = SettingsService(option_store, cipher=CredentialCipher("old-key"), option_name=OPTION)
        await writer.save({"client_id": "id", "client_secret": "secret"})

        reader = SettingsService(option_store, cipher=CredentialCipher("new-key"), option_name=OPTION)
        assert reader.credentials(await reader.load()) is None

    async def test_interval_change_reschedules(self, service, signals):
        update = await service.save({"pull_time_interval": "7200", "selected_pull_sitegroups": ["news"]})
        assert update.rescheduled
        assert signals.refreshes == [(7200, ["news"])]

    async def test_unchanged_interval_does_not_reschedule(self, service, signals):
        await service.save({"pull_time_interval": "7200"})
        signals.refreshes.clear()
        update = await service.save({"pull_time_interval": "7200", "delete_pushed_posts": "on"})
        assert not update.rescheduled
        assert signals.refreshes == []

    async def test_pull_now_is_a_side_channel(self, service, signals, option_store):
        update = await service.save({"pull_now": True}, pull_now=True)
        assert update.pulled
        assert signals.pulls == 1
        assert "pull_now" not in option_store.values[OPTION]

    async def test_pull_now_not_started_is_reported(self, option_store, cipher):
        service = SettingsService(
            option_store, cipher=cipher, signals=SchedulerService(FakeRedis()), option_name=OPTION
        )
        update = await service.save({}, pull_now=True)
        assert update.pulled is False

    async def test_signal_failure_does_not_fail_save(self, option_store, cipher):
        class BrokenSignals(RecordingSignals):
            async def refresh_pull_jobs(self, interval, sitegroups):
                raise RuntimeError("scheduler down")

        service = SettingsService(option_store, cipher=cipher, signals=BrokenSignals(), option_name=OPTION)
        update = await service.save({"pull_time_interval": "900"})
        assert not update.rescheduled
        assert option_store.values[OPTION]["pull_time_interval"] == 900

    async def test_failures_are_reported(self, service):
        update = await service.save({"notification_email": "nope"})
        assert [f.field for f in update.failures] == ["notification_email"]
        assert update.document["notification_email"] == ""
