"""
Chrome Capture Tests

Run all tests:
    pytest tests/ -v

Run specific test file:
    pytest tests/test_connection.py -v

Skip integration tests (no Chrome required):
    pytest tests/ -v -m "not integration"

Integration tests expect Chrome on CHROME_WS_HOST:CHROME_WS_PORT
(default 127.0.0.1:9222), e.g.:
    google-chrome --remote-debugging-port=9222 --headless=new
"""
