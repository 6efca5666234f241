"""
Serving — the hello-world HTTP service.

The app answers every request with the same plaintext greeting and is
run by uvicorn on a socket bound before the server starts, so a bind
failure is reported (and fatal) before anything else happens.
"""
