"""
Example SSO login server using sso-auth-py.

Run with:
    SSO_AUTH_PROVIDER_CONFIG='{"github": {"client_id": "...", "client_secret": "..."}}' \
    SSO_AUTH_IDENTITY_MODE=bare \
    uvicorn examples.server:app --reload

Then:
    curl -X POST "http://localhost:8000/login/github?code=<oauth code>"
    curl -X POST "http://localhost:8000/samlValidate?ticket=ST-unknown"
"""

import logging

from fastapi import FastAPI, Request, Response

from sso_auth import ClientCredential, Settings, UsernamePasswordCredential, WebContext, setup_auth

logging.basicConfig(level=logging.INFO)

app = FastAPI(title="sso-auth-py example")
app = setup_auth(app, Settings())


@app.post("/login")
async def login(request: Request, response: Response, username: str, password: str):
    outcome = await request.app.state.auth_chain.resolve(
        UsernamePasswordCredential(username, password), WebContext(request, response)
    )
    if not outcome.valid:
        response.status_code = 401
        return {"error": outcome.failure.kind.value, "detail": outcome.failure.description}
    return outcome.principal.to_dict()


@app.post("/login/{provider}")
async def delegated_login(request: Request, response: Response, provider: str, code: str):
    outcome = await request.app.state.auth_chain.resolve(
        ClientCredential(provider, {"code": code}), WebContext(request, response)
    )
    if not outcome.valid:
        response.status_code = 503 if outcome.failure.transient else 401
        return {"error": outcome.failure.kind.value, "detail": outcome.failure.description}
    return outcome.principal.to_dict()


@app.post("/samlValidate")
async def saml_validate(request: Request, ticket: str):
    # ticket storage is not part of this example; every ticket is unknown
    return request.app.state.failure_view.to_response(f"Ticket {ticket} not recognized")
