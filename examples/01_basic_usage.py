"""
Basic http-fetch usage.

Demonstrates GET, JSON POST, query params, path params and error handling.
"""

from http_fetch import new_dispatcher


def basic_get_request(dispatcher):
    """Simple GET request."""
    print("\n=== Basic GET Request ===")

    resp = dispatcher.new_request().get("https://jsonplaceholder.typicode.com/posts/1")

    print(f"Status: {resp.status_code}")
    print(f"Data: {resp.json()}")


def post_with_json(dispatcher):
    """POST request with JSON body."""
    print("\n=== POST with JSON ===")

    data = {
        "title": "My Post",
        "body": "This is the content",
        "userId": 1
    }

    resp = dispatcher.new_request().json(data).post("https://jsonplaceholder.typicode.com/posts")
    print(f"Status: {resp.status_code}")
    print(f"Created: {resp.json()}")


def with_query_and_path_params(dispatcher):
    """GET with path params and query."""
    print("\n=== Path params + query ===")

    resp = (
        dispatcher.new_request()
        .path_params({"userId": "1"})
        .add_query("_limit", "3")
        .get("https://jsonplaceholder.typicode.com/users/{userId}/posts")
    )

    posts = resp.json()
    print(f"Found {len(posts)} posts for user 1")


def error_handling(dispatcher):
    """Ошибки не бросаются: они лежат в Response.error."""
    print("\n=== Error handling ===")

    resp = dispatcher.new_request().get("http://127.0.0.1:1/unreachable")
    if resp.error is not None:
        print(f"Request failed: {type(resp.error).__name__}: {resp.error}")

    resp = dispatcher.new_request().get("not a url")
    print(f"Invalid URL: {type(resp.error).__name__}")


if __name__ == "__main__":
    with new_dispatcher() as dispatcher:
        basic_get_request(dispatcher)
        post_with_json(dispatcher)
        with_query_and_path_params(dispatcher)
        error_handling(dispatcher)
