"""
Device Factory Management - SWM Vehicle Sync Client
Version: 1.1.0

Changelog:
v1.1.0 (2026-03-04): Login session cached for SWM_SESSION_TTL; "Vehicle
                      already exists" on create counts as success
v1.0.0 (2026-02-27): Initial create/update/delete vehicle client

Talks to the SWM vehicle management service over HTTP (httpx). Every call
is attempted once; transport and decoding failures surface as
VehicleSyncError so callers can tell them apart from local errors.
"""

import time
import logging
from typing import Optional, Dict, Any

import httpx

from config import settings as default_settings
from services.exceptions import VehicleSyncError
from services.validators import clean_log_value

logger = logging.getLogger(__name__)

VEHICLE_ALREADY_EXISTS = "Vehicle already exists"
SESSION_HEADER = "sessionId"


class SwmClient:
    """Async client for the SWM vehicle endpoints."""

    def __init__(self, base_url: str, *, username: str = "", password: str = "",
                 domain: str = "", domain_id: str = "", vehicle_model_id: str = "",
                 login_api: str = "/api/v1/login", vehicles_api: str = "/api/v1/vehicles",
                 create_api: str = "/api/v1/vehicles/create",
                 update_api: str = "/api/v1/vehicles/update",
                 delete_api: str = "/api/v1/vehicles/delete",
                 timeout: float = 10.0, session_ttl: int = 1800,
                 transport: Optional[httpx.AsyncBaseTransport] = None):
        self.username = username
        self.password = password
        self.domain = domain
        self.domain_id = domain_id
        self.vehicle_model_id = vehicle_model_id
        self.login_api = login_api
        self.vehicles_api = vehicles_api
        self.create_api = create_api
        self.update_api = update_api
        self.delete_api = delete_api
        self.session_ttl = session_ttl
        self._session_id: Optional[str] = None
        self._session_created = 0.0
        self._client = httpx.AsyncClient(base_url=base_url, timeout=timeout, transport=transport)

    @classmethod
    def from_settings(cls, config=None, **kwargs) -> "SwmClient":
        config = config or default_settings
        return cls(
            config.SWM_BASE_URL,
            username=config.SWM_USERNAME,
            password=config.SWM_PASSWORD,
            domain=config.SWM_DOMAIN,
            domain_id=config.SWM_DOMAIN_ID,
            vehicle_model_id=config.SWM_VEHICLE_MODEL_ID,
            login_api=config.SWM_LOGIN_API,
            vehicles_api=config.SWM_VEHICLES_API,
            create_api=config.SWM_CREATE_API,
            update_api=config.SWM_UPDATE_API,
            delete_api=config.SWM_DELETE_API,
            timeout=config.SWM_TIMEOUT,
            session_ttl=config.SWM_SESSION_TTL,
            **kwargs,
        )

    async def aclose(self):
        await self._client.aclose()

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc):
        await self.aclose()

    # -- Transport helpers --

    async def _request(self, method: str, path: str, **kwargs) -> httpx.Response:
        try:
            return await self._client.request(method, path, **kwargs)
        except httpx.HTTPError as e:
            raise VehicleSyncError(
                f"SWM request failed: {e}", endpoint=path) from e

    @staticmethod
    def _json(response: httpx.Response, path: str) -> Dict[str, Any]:
        try:
            return response.json()
        except ValueError as e:
            raise VehicleSyncError(
                "Unable to parse SWM response", status=response.status_code,
                endpoint=path, code="dfd-053") from e

    async def login(self) -> str:
        """Return a session id, reusing the cached one until it expires"""
        now = time.monotonic()
        if self._session_id and now - self._session_created < self.session_ttl:
            return self._session_id

        response = await self._request("POST", self.login_api, json={
            "userName": self.username,
            "password": self.password,
            "domain": self.domain,
        })
        if response.status_code != 200:
            raise VehicleSyncError(
                f"SWM login failed with status {response.status_code}",
                status=response.status_code, endpoint=self.login_api)
        session_id = self._json(response, self.login_api).get("sessionId")
        if not session_id:
            raise VehicleSyncError("SWM session id is null", endpoint=self.login_api, code="dfd-051")

        self._session_id = session_id
        self._session_created = now
        logger.debug("SWM session established")
        return session_id

    async def _headers(self) -> Dict[str, str]:
        return {SESSION_HEADER: await self.login(), "Content-Type": "application/json"}

    # -- Vehicle operations --

    async def find_vehicle_id(self, vin: str) -> Optional[str]:
        """SWM's internal id for a VIN, or None when SWM does not know it"""
        response = await self._request(
            "GET", self.vehicles_api, params={"vin": vin}, headers=await self._headers())
        if response.status_code != 200:
            logger.info(f"SWM vehicle lookup returned {response.status_code} for VIN {clean_log_value(vin)}")
            return None
        body = self._json(response, self.vehicles_api)
        for vehicle in body.get("representationObjects") or []:
            if vehicle.get("vin") == vin:
                return vehicle.get("id")
        return None

    async def create_vehicle(self, vin: str, *, chassis_number: str = None,
                             production_week: str = None, plant: str = None,
                             model_year: str = None, model: str = None) -> bool:
        payload = {"vehiclePost": [{
            "vin": vin,
            "vehicleModelId": self.vehicle_model_id,
            "domainId": self.domain_id,
            "chassisNumber": chassis_number,
            "productionWeek": production_week,
            "plant": plant,
            "model": model,
            "specificAttributes": {"vehicleModelYear": model_year},
        }]}
        response = await self._request(
            "POST", self.create_api, json=payload, headers=await self._headers())
        if response.status_code != 200:
            logger.error(f"SWM vehicle creation returned {response.status_code}")
            return False

        results = self._json(response, self.create_api).get("actionResult") or [{}]
        result = results[0]
        if result.get("code") == 0:
            logger.debug(f"SWM vehicle created for VIN {clean_log_value(vin)}")
            return True
        message = result.get("reasonMessage") or result.get("resultMessage")
        if message == VEHICLE_ALREADY_EXISTS:
            logger.debug(f"SWM vehicle already present for VIN {clean_log_value(vin)}")
            return True
        raise VehicleSyncError(
            f"SWM vehicle creation failed: {message}", endpoint=self.create_api, code="dfd-052")

    async def update_vehicle(self, chassis_number: str, production_week: str, plant: str,
                             vin: str, model_year: str) -> bool:
        vehicle_id = await self.find_vehicle_id(vin)
        payload = {
            "id": vehicle_id,
            "vin": vin,
            "chassisNumber": chassis_number,
            "productionWeek": production_week,
            "plant": plant,
            "specificAttributes": {"vehicleModelYear": model_year},
        }
        response = await self._request(
            "PUT", self.update_api, json=payload, headers=await self._headers())
        logger.debug(f"SWM update status {response.status_code} for VIN {clean_log_value(vin)}")
        return response.status_code == 200

    async def delete_vehicle(self, vin: str) -> bool:
        vehicle_id = await self.find_vehicle_id(vin)
        if vehicle_id is None:
            logger.info(f"No SWM vehicle found for VIN {clean_log_value(vin)}")
            return False
        response = await self._request(
            "PUT", self.delete_api, json={"vehicleIds": [vehicle_id]},
            headers=await self._headers())
        if response.status_code != 200:
            logger.info(f"Unable to delete SWM vehicle, status {response.status_code}")
            return False
        logger.debug(f"SWM vehicle deleted for VIN {clean_log_value(vin)}")
        return True
