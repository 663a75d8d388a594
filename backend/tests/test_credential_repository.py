from stockdesk.core.config import Settings
from stockdesk.core.constants import STORAGE_KEY_CHAT_API_KEY, STORAGE_KEY_VISION_API_KEY
from stockdesk.core.exceptions import StorageError
from stockdesk.core.storage import MemoryStore
from stockdesk.repositories.credential_repository import CredentialRepository


def env_config(**overrides) -> Settings:
    values = {"PERPLEXITY_API_KEY": "pplx-env", "GEMINI_API_KEY": "AIza-env"}
    values.update(overrides)
    return Settings(_env_file=None, **values)


def test_empty_when_nothing_configured(config, store):
    creds = CredentialRepository(store, config).get()

    assert creds.chat_api_key == ""
    assert creds.vision_api_key == ""


def test_environment_defaults_apply(store):
    creds = CredentialRepository(store, env_config()).get()

    assert creds.chat_api_key == "pplx-env"
    assert creds.vision_api_key == "AIza-env"


def test_persisted_value_overrides_environment(store):
    store.set_item(STORAGE_KEY_CHAT_API_KEY, "pplx-saved")

    creds = CredentialRepository(store, env_config()).get()

    assert creds.chat_api_key == "pplx-saved"
    assert creds.vision_api_key == "AIza-env"


def test_set_persists_each_non_empty_field(store):
    repo = CredentialRepository(store, env_config())

    creds = repo.set(chat_api_key="pplx-new")

    assert creds.chat_api_key == "pplx-new"
    assert store.get_item(STORAGE_KEY_CHAT_API_KEY) == "pplx-new"
    assert store.get_item(STORAGE_KEY_VISION_API_KEY) is None


def test_empty_value_is_never_persisted(store):
    store.set_item(STORAGE_KEY_VISION_API_KEY, "AIza-saved")
    repo = CredentialRepository(store, env_config())

    creds = repo.set(vision_api_key="")

    assert creds.vision_api_key == ""
    assert store.get_item(STORAGE_KEY_VISION_API_KEY) == "AIza-saved"
    # 重新加载后回到已保存的值
    assert CredentialRepository(store, env_config()).get().vision_api_key == "AIza-saved"


def test_storage_failure_is_swallowed():
    class BrokenStore(MemoryStore):
        def get_item(self, key):
            raise StorageError("unavailable")

        def set_item(self, key, value):
            raise StorageError("unavailable")

    repo = CredentialRepository(BrokenStore(), env_config())

    assert repo.get().chat_api_key == "pplx-env"
    assert repo.set(chat_api_key="pplx-typed").chat_api_key == "pplx-typed"


def test_masked_view_hides_keys(store):
    repo = CredentialRepository(store, env_config(GEMINI_API_KEY=None))

    view = repo.masked()

    assert view.chat_api_key_set is True
    assert view.chat_api_key_hint == "...-env"
    assert view.vision_api_key_set is False
    assert view.vision_api_key_hint == ""
