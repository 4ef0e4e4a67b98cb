"""Authentication manager for Azure services"""

import os
from typing import Any, Dict, List, Optional

from azure.core.exceptions import AzureError
from azure.identity import (
    AzureCliCredential,
    DefaultAzureCredential,
    EnvironmentCredential,
)
from azure.mgmt.compute import ComputeManagementClient
from azure.mgmt.costmanagement import CostManagementClient
from azure.mgmt.network import NetworkManagementClient
from azure.mgmt.storage import StorageManagementClient
from azure.mgmt.subscription import SubscriptionClient

from ..core.exceptions import AuthenticationError
from ..utils.logger import setup_logger


class AuthenticationManager:
    """Manages Azure authentication and client creation"""

    def __init__(self, credential: Any = None):
        self.logger = setup_logger(self.__class__.__name__)
        self.credential = credential
        self._subscription_cache: Dict[str, str] = {}
        self._client_cache: Dict[str, Dict[str, Any]] = {}

    def authenticate(self) -> Any:
        """Establish a credential, trying service principal, Azure CLI, then the default chain"""

        if self.credential is not None:
            return self.credential

        candidates = []
        if all(os.getenv(var) for var in ['AZURE_TENANT_ID', 'AZURE_CLIENT_ID', 'AZURE_CLIENT_SECRET']):
            candidates.append(("environment variables", EnvironmentCredential))
        candidates.append(("Azure CLI", AzureCliCredential))
        candidates.append(("default credential chain", DefaultAzureCredential))

        for label, credential_type in candidates:
            try:
                credential = credential_type()
                self._test_credential(credential)
            except (AzureError, ValueError) as e:
                self.logger.debug(f"Authentication using {label} failed: {e}")
                continue
            self.credential = credential
            self.logger.info(f"Authenticated using {label}")
            return credential

        raise AuthenticationError(
            "Unable to authenticate with Azure. Run 'az login' or set AZURE_TENANT_ID, "
            "AZURE_CLIENT_ID and AZURE_CLIENT_SECRET."
        )

    def _test_credential(self, credential: Any) -> None:
        """Test the credential by listing subscriptions"""
        subscription_client = SubscriptionClient(credential)
        next(iter(subscription_client.subscriptions.list()), None)

    def get_accessible_subscriptions(self) -> List[str]:
        """Get list of enabled subscription IDs"""

        credential = self.authenticate()
        subscription_client = SubscriptionClient(credential)

        subscription_ids = []
        for sub in subscription_client.subscriptions.list():
            state = getattr(sub.state, 'value', sub.state)
            if state == 'Enabled':
                subscription_ids.append(sub.subscription_id)
                self._subscription_cache[sub.subscription_id] = sub.display_name
                self.logger.debug(f"Found subscription: {sub.display_name} ({sub.subscription_id})")

        self.logger.info(f"Found {len(subscription_ids)} enabled subscriptions")
        return subscription_ids

    def resolve_subscriptions(
        self,
        subscription_ids: Optional[List[str]] = None,
        excluded_subscription_ids: Optional[List[str]] = None,
    ) -> List[str]:
        """Explicit subscriptions, or all accessible ones, minus exclusions"""

        targets = list(subscription_ids or []) or self.get_accessible_subscriptions()
        excluded = set(excluded_subscription_ids or [])
        resolved = []
        for sub_id in targets:
            if sub_id in excluded:
                self.logger.info(f"Skipping excluded subscription {sub_id}")
            elif sub_id not in resolved:
                resolved.append(sub_id)
        return resolved

    def get_clients_for_subscription(self, subscription_id: str) -> Dict[str, Any]:
        """Get Azure service clients for a subscription"""

        if subscription_id in self._client_cache:
            return self._client_cache[subscription_id]

        credential = self.authenticate()
        clients = {
            'compute': ComputeManagementClient(credential, subscription_id),
            'network': NetworkManagementClient(credential, subscription_id),
            'storage': StorageManagementClient(credential, subscription_id),
            'cost': CostManagementClient(credential),
        }

        self._client_cache[subscription_id] = clients
        self.logger.debug(f"Created clients for subscription {subscription_id}")
        return clients

    def get_subscription_name(self, subscription_id: str) -> str:
        """Get subscription display name"""
        return self._subscription_cache.get(subscription_id, subscription_id[:8] + "...")
