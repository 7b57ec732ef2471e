from providerhub.models.provider_setting import ProviderSetting

__all__ = ["ProviderSetting"]
