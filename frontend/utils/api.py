from typing import Optional

import requests
import streamlit as st


class APIClient:
    """Simple API client for backend requests."""

    def __init__(self, base_url: str):
        self.base_url = base_url

    def _headers(self) -> dict:
        """Get headers with auth token if available."""
        headers = {"Content-Type": "application/json"}
        if st.session_state.get("token"):
            headers["Authorization"] = f"Bearer {st.session_state.token}"
        return headers

    def _parse_json(self, resp) -> Optional[dict]:
        """Safely parse JSON, return None or text on failure."""
        if resp is None or not resp.text:
            return None
        try:
            return resp.json()
        except ValueError:
            # Non-JSON response
            return {"raw": resp.text}

    def _request(self, method: str, endpoint: str, data: Optional[dict] = None, params: Optional[dict] = None) -> dict:
        """Send a request and wrap the outcome as {"status", "data"} or {"status": 0, "error"}."""
        try:
            resp = requests.request(
                method,
                f"{self.base_url}{endpoint}",
                headers=self._headers(),
                json=data,
                params=params or {},
                timeout=30,
            )
            return {"status": resp.status_code, "data": self._parse_json(resp)}
        except requests.exceptions.ConnectionError:
            return {"status": 0, "error": "Cannot connect to backend"}
        except requests.exceptions.RequestException as e:
            return {"status": 0, "error": str(e)}

    def _get(self, endpoint: str, params: Optional[dict] = None) -> dict:
        """Make GET request."""
        return self._request("GET", endpoint, params=params)

    def _post(self, endpoint: str, data: Optional[dict] = None, params: Optional[dict] = None) -> dict:
        """Make POST request."""
        return self._request("POST", endpoint, data=data or {}, params=params)

    def _patch(self, endpoint: str, data: dict) -> dict:
        """Make PATCH request."""
        return self._request("PATCH", endpoint, data=data)

    def _delete(self, endpoint: str) -> dict:
        """Make DELETE request."""
        return self._request("DELETE", endpoint)

    @staticmethod
    def error_message(result: dict, default: str = "Request failed") -> str:
        """Best effort error text from a wrapped response."""
        data = result.get("data")
        if isinstance(data, dict) and data.get("detail"):
            detail = data["detail"]
            if isinstance(detail, list):
                # FastAPI validation errors
                return "; ".join(d.get("msg", str(d)) for d in detail)
            return str(detail)
        return result.get("error") or default

    # Auth endpoints
    def login(self, email: str, password: str) -> dict:
        """Login and get token."""
        return self._post("/auth/login", {
            "email": email,
            "password": password,
        })

    def register(self, name: str, email: str, password: str, account_type: str) -> dict:
        """Register new user; the response already carries a token."""
        return self._post("/auth/register", {
            "name": name,
            "email": email,
            "password": password,
            "password_confirm": password,
            "account_type": account_type,
        })

    def get_me(self) -> dict:
        """Get current user profile."""
        return self._get("/auth/me")

    def change_password(
        self,
        current_password: str,
        new_password: str,
        new_password_confirm: str,
    ) -> dict:
        """Change user password."""
        return self._post("/auth/change-password", {
            "current_password": current_password,
            "new_password": new_password,
            "new_password_confirm": new_password_confirm,
        })

    def request_password_reset(self, email: str) -> dict:
        """Ask for a password reset link."""
        return self._post("/auth/password-reset/request", {"email": email})

    def confirm_password_reset(self, token: str, new_password: str) -> dict:
        """Set a new password with a reset token."""
        return self._post("/auth/password-reset/confirm", {
            "token": token,
            "new_password": new_password,
            "new_password_confirm": new_password,
        })

    def verify_email(self, token: str) -> dict:
        """Confirm a pending email change."""
        return self._post("/auth/verify-email", {"token": token})

    # Health endpoint
    def health(self) -> dict:
        """Check API health."""
        return self._get("/health")

    # User endpoints
    def update_profile(self, **fields) -> dict:
        """Update name, email, about or avatar."""
        return self._patch("/users/me", {k: v for k, v in fields.items() if v is not None})

    def top_up(self, amount: float) -> dict:
        """Add funds to the investor balance."""
        return self._post("/users/me/top-up", {"amount": amount})

    def delete_account(self) -> dict:
        """Delete the signed-in account."""
        return self._delete("/users/me")

    def get_profile(self, user_id: str) -> dict:
        """Get a public profile."""
        return self._get(f"/users/{user_id}")

    # Deal endpoints
    def list_deals(
        self,
        page: int = 1,
        page_size: int = 20,
        sector: Optional[str] = None,
        status: Optional[str] = None,
    ) -> dict:
        """List deals with filters."""
        params = {"page": page, "page_size": page_size}
        if sector:
            params["sector"] = sector
        if status:
            params["status"] = status
        return self._get("/deals", params)

    def get_deal(self, deal_id: str) -> dict:
        """Get deal detail with metrics."""
        return self._get(f"/deals/{deal_id}")

    def create_deal(self, deal: dict) -> dict:
        """Create the MSME's deal."""
        return self._post("/deals", deal)

    def update_deal(self, deal_id: str, fields: dict) -> dict:
        """Update the MSME's deal."""
        return self._patch(f"/deals/{deal_id}", fields)

    def get_deal_investors(self, deal_id: str) -> dict:
        """Investor roster of an owned deal."""
        return self._get(f"/deals/{deal_id}/investors")

    def allocate(self, deal_id: str, amount: float, idempotency_key: Optional[str] = None) -> dict:
        """Allocate funds to a deal."""
        data = {"amount": amount}
        if idempotency_key:
            data["idempotency_key"] = idempotency_key
        return self._post(f"/deals/{deal_id}/allocate", data)

    # Investment endpoints
    def list_investments(self, page: int = 1, page_size: int = 50, status: Optional[str] = None) -> dict:
        """Investment history of the investor."""
        params = {"page": page, "page_size": page_size}
        if status:
            params["status"] = status
        return self._get("/investments", params)

    def refund_investment(self, investment_id: str) -> dict:
        """Refund an investment (deal owner)."""
        return self._post(f"/investments/{investment_id}/refund")

    def complete_investment(self, investment_id: str) -> dict:
        """Mark an investment repaid (deal owner)."""
        return self._post(f"/investments/{investment_id}/complete")

    # Stats endpoints
    def get_overview(self) -> dict:
        """Public platform totals."""
        return self._get("/stats/overview")

    def get_investor_dashboard(self) -> dict:
        """Investor dashboard summary."""
        return self._get("/stats/investor/dashboard")

    def get_investor_deals(self) -> dict:
        """Deals held by the investor."""
        return self._get("/stats/investor/deals")

    def get_msme_dashboard(self) -> dict:
        """MSME dashboard summary."""
        return self._get("/stats/msme/dashboard")
