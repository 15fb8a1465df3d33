"""Landing page."""

from fastapi.responses import HTMLResponse

INDEX_HTML = """
    <html>
      <head>
        <title>DIFY2OPENAI</title>
      </head>
      <body>
        <h1>Dify2OpenAI</h1>
        <p>Congratulations! Your project has been successfully deployed.</p>
      </body>
    </html>
"""


async def index() -> HTMLResponse:
    """GET / - static page confirming the deployment is up."""
    return HTMLResponse(INDEX_HTML)
