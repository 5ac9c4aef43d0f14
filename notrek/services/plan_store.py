# Copyright 2025 John Brosnihan
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.
"""Plan storage behind an injectable key-value interface.

This module provides:
1. PlanStore, the abstract CRUD interface handlers depend on
2. InMemoryPlanStore, the default process-lifetime backend
3. FirestorePlanStore, a durable backend using a ``plans`` collection
4. create_plan_store, which picks the backend from settings

Writes are unconditional: putting a plan whose id already exists replaces it
(last write wins). Neither backend coordinates concurrent writers.
"""

import logging
from abc import ABC, abstractmethod
from functools import lru_cache

from google.api_core import exceptions as gcp_exceptions
from google.auth import exceptions as auth_exceptions
from google.cloud import firestore

from notrek.config import Settings, get_settings
from notrek.models.plan import Plan

logger = logging.getLogger(__name__)

PLANS_COLLECTION = "plans"


class StoreConfigurationError(Exception):
    """Raised when the plan store configuration is invalid or missing."""

    pass


class StoreOperationError(Exception):
    """Raised when a plan store operation fails."""

    pass


class PlanStore(ABC):
    """Key-value store of plans keyed by plan id."""

    @abstractmethod
    def get(self, plan_id: str) -> Plan | None:
        """Return the plan with ``plan_id`` or None."""

    @abstractmethod
    def put(self, plan: Plan) -> None:
        """Create or replace a plan."""

    @abstractmethod
    def delete(self, plan_id: str) -> bool:
        """Delete a plan. Returns True if it existed."""

    @abstractmethod
    def list_ids(self) -> list[str]:
        """Identifiers of all stored plans."""

    def ping(self) -> None:
        """Raise if the store is not usable. Used by the readiness probe."""
        return None


class InMemoryPlanStore(PlanStore):
    """
    Process-lifetime plan store.

    Contents are lost on restart. The mapping is owned by the instance, so
    each application (and each test) gets its own.
    """

    def __init__(self) -> None:
        self._plans: dict[str, Plan] = {}

    def get(self, plan_id: str) -> Plan | None:
        plan = self._plans.get(plan_id)
        return plan.model_copy(deep=True) if plan is not None else None

    def put(self, plan: Plan) -> None:
        self._plans[plan.id] = plan.model_copy(deep=True)

    def delete(self, plan_id: str) -> bool:
        return self._plans.pop(plan_id, None) is not None

    def list_ids(self) -> list[str]:
        return list(self._plans)


@lru_cache(maxsize=1)
def get_firestore_client() -> firestore.Client:
    """
    Get a singleton Firestore client instance.

    Uses Application Default Credentials (ADC) and the FIRESTORE_PROJECT_ID
    from settings to initialize the client.

    Raises:
        StoreConfigurationError: If FIRESTORE_PROJECT_ID is not configured
        StoreConfigurationError: If Application Default Credentials are not available
    """
    settings = get_settings()

    if not settings.FIRESTORE_PROJECT_ID:
        raise StoreConfigurationError(
            "FIRESTORE_PROJECT_ID is not configured. "
            "Please set the FIRESTORE_PROJECT_ID environment variable to your GCP project ID."
        )

    try:
        client = firestore.Client(project=settings.FIRESTORE_PROJECT_ID)
        logger.info(f"Firestore client initialized for project: {settings.FIRESTORE_PROJECT_ID}")
        return client
    except auth_exceptions.DefaultCredentialsError as e:
        raise StoreConfigurationError(
            "Application Default Credentials (ADC) not found. "
            "Please set GOOGLE_APPLICATION_CREDENTIALS environment variable to the path "
            "of your service account JSON key file, or run 'gcloud auth application-default login' "
            "for local development. "
            f"Original error: {str(e)}"
        ) from e
    except Exception as e:
        raise StoreConfigurationError(f"Failed to initialize Firestore client: {str(e)}") from e


class FirestorePlanStore(PlanStore):
    """Plan store persisting each plan as one document in the ``plans`` collection."""

    def __init__(self, client: firestore.Client | None = None):
        self._client = client

    @property
    def client(self) -> firestore.Client:
        if self._client is None:
            self._client = get_firestore_client()
        return self._client

    def _doc(self, plan_id: str):
        return self.client.collection(PLANS_COLLECTION).document(plan_id)

    def get(self, plan_id: str) -> Plan | None:
        try:
            snapshot = self._doc(plan_id).get()
        except gcp_exceptions.GoogleAPICallError as e:
            error_msg = f"Firestore API error reading plan {plan_id}: {str(e)}"
            logger.error(error_msg)
            raise StoreOperationError(error_msg) from e

        if not snapshot.exists:
            return None
        data = snapshot.to_dict()
        if not data:
            return None
        return Plan.model_validate(data)

    def put(self, plan: Plan) -> None:
        try:
            self._doc(plan.id).set(plan.model_dump(mode="json", by_alias=True))
        except gcp_exceptions.GoogleAPICallError as e:
            error_msg = f"Firestore API error writing plan {plan.id}: {str(e)}"
            logger.error(error_msg)
            raise StoreOperationError(error_msg) from e
        logger.info(f"Stored plan {plan.id} with {len(plan.tasks)} tasks")

    def delete(self, plan_id: str) -> bool:
        try:
            doc_ref = self._doc(plan_id)
            existed = doc_ref.get().exists
            if existed:
                doc_ref.delete()
            return existed
        except gcp_exceptions.GoogleAPICallError as e:
            error_msg = f"Firestore API error deleting plan {plan_id}: {str(e)}"
            logger.error(error_msg)
            raise StoreOperationError(error_msg) from e

    def list_ids(self) -> list[str]:
        try:
            return [doc.id for doc in self.client.collection(PLANS_COLLECTION).list_documents()]
        except gcp_exceptions.GoogleAPICallError as e:
            error_msg = f"Firestore API error listing plans: {str(e)}"
            logger.error(error_msg)
            raise StoreOperationError(error_msg) from e

    def ping(self) -> None:
        # Client construction validates project and credentials.
        _ = self.client


def create_plan_store(settings: Settings) -> PlanStore:
    """Build the plan store selected by PLAN_STORE_BACKEND."""
    if settings.PLAN_STORE_BACKEND == "firestore":
        logger.info("Using Firestore plan store")
        return FirestorePlanStore()
    logger.info("Using in-memory plan store; plans are lost on restart")
    return InMemoryPlanStore()
