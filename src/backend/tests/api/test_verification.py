"""
Tests for the voter verification endpoints.
"""

import pytest
from httpx import AsyncClient

BASE = "/api/v1/verify"


@pytest.mark.unit
class TestRequestOtpEndpoint:
    async def test_request_otp(self, client: AsyncClient, election, dispatcher, email_channel) -> None:
        response = await client.post(f"{BASE}/request-otp", json={"reg_no": "reg001"})
        await dispatcher.drain()

        assert response.status_code == 200
        data = response.json()
        assert data == {"message": "OTP sent successfully", "expiresIn": 300, "sentVia": ["Email", "SMS"]}
        # The code only ever leaves through a delivery channel
        assert email_channel.last_code not in response.text

    async def test_unknown_voter(self, client: AsyncClient, election) -> None:
        response = await client.post(f"{BASE}/request-otp", json={"reg_no": "NOPE"})

        assert response.status_code == 404
        assert response.json()["detail"] == "Voter not found"

    async def test_blank_reg_no(self, client: AsyncClient, election) -> None:
        response = await client.post(f"{BASE}/request-otp", json={"reg_no": "   "})

        assert response.status_code == 422

    async def test_no_contact_details(self, client: AsyncClient, election) -> None:
        response = await client.post(f"{BASE}/request-otp", json={"reg_no": "REG004"})

        assert response.status_code == 400
        assert "hint" in response.json()

    async def test_cooldown_returns_retry_after(self, client: AsyncClient, election, dispatcher, clock) -> None:
        await client.post(f"{BASE}/request-otp", json={"reg_no": "REG001"})
        await dispatcher.drain()

        clock.advance(seconds=10)
        response = await client.post(f"{BASE}/request-otp", json={"reg_no": "REG001"})

        assert response.status_code == 429
        assert response.headers["Retry-After"] == "50"
        assert response.json()["retryAfter"] == 50

        clock.advance(seconds=51)
        response = await client.post(f"{BASE}/request-otp", json={"reg_no": "REG001"})
        await dispatcher.drain()
        assert response.status_code == 200


@pytest.mark.unit
class TestConfirmOtpEndpoint:
    async def _request(self, client, dispatcher, email_channel) -> str:
        await client.post(f"{BASE}/request-otp", json={"reg_no": "REG001"})
        await dispatcher.drain()
        return email_channel.last_code

    async def test_confirm_issues_ballot_token(self, client: AsyncClient, election, dispatcher, email_channel) -> None:
        code = await self._request(client, dispatcher, email_channel)

        response = await client.post(f"{BASE}/confirm", json={"reg_no": "REG001", "otp": code})

        assert response.status_code == 200
        data = response.json()
        assert data["message"] == "OTP verified successfully. Ballot issued."
        assert len(data["ballotToken"]) == 64
        assert "expiresAt" in data

    async def test_wrong_code(self, client: AsyncClient, election, dispatcher, email_channel) -> None:
        code = await self._request(client, dispatcher, email_channel)
        wrong = "000000" if code != "000000" else "111111"

        response = await client.post(f"{BASE}/confirm", json={"reg_no": "REG001", "otp": wrong})

        assert response.status_code == 401
        assert response.json()["detail"] == "Invalid OTP"

    async def test_second_confirm_fails(self, client: AsyncClient, election, dispatcher, email_channel) -> None:
        code = await self._request(client, dispatcher, email_channel)
        await client.post(f"{BASE}/confirm", json={"reg_no": "REG001", "otp": code})

        response = await client.post(f"{BASE}/confirm", json={"reg_no": "REG001", "otp": code})

        assert response.status_code == 400
        assert response.json() == {"detail": "No valid OTP found", "hint": "Request a new OTP"}

    async def test_non_numeric_code(self, client: AsyncClient, election) -> None:
        response = await client.post(f"{BASE}/confirm", json={"reg_no": "REG001", "otp": "12ab56"})

        assert response.status_code == 422
