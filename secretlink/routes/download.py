from http import HTTPStatus
from urllib.parse import quote

from fastapi import APIRouter, HTTPException, Request
from fastapi.responses import RedirectResponse, StreamingResponse

from ..errors import RedemptionError
from ..issuer import TOKEN_PARAM
from ..models import RedemptionRequest
from ..redeemer import FileDownload, LinkRedeemer, ProxiedBody, Redirect


def content_disposition(filename: str) -> str:
    """Attachment header; non-ASCII names use the RFC 5987 form."""
    try:
        filename.encode("ascii")
    except UnicodeEncodeError:
        return f"attachment; filename*=utf-8''{quote(filename)}"
    escaped = filename.replace("\\", "\\\\").replace('"', '\\"')
    return f'attachment; filename="{escaped}"'


class ClosingStreamingResponse(StreamingResponse):
    """StreamingResponse that always closes its body, even if sending failed early."""

    async def __call__(self, scope, receive, send):
        try:
            await super().__call__(scope, receive, send)
        finally:
            aclose = getattr(self.body_iterator, "aclose", None)
            if aclose is not None:
                await aclose()


class DownloadRouter:
    def __init__(self, redeemer: LinkRedeemer, route_path: str):
        self.redeemer = redeemer

        self.router = APIRouter(tags=["Secret"])
        self.router.add_api_route(route_path, self.download, methods=["GET"], response_model=None)

    @staticmethod
    def build_request(request: Request) -> RedemptionRequest:
        url = request.url
        origin = f"{url.scheme}://{url.netloc}"
        return RedemptionRequest(
            url=str(url),
            token=request.query_params.get(TOKEN_PARAM) or None,
            host=url.hostname or "",
            origin=origin,
        )

    async def download(self, request: Request):
        """Redeem a secret link: stream the file, proxy the URL or redirect to it."""
        try:
            result = await self.redeemer.redeem(self.build_request(request))
        except RedemptionError as e:
            # The reason stays in the logs
            try:
                detail = HTTPStatus(e.status_code).phrase
            except ValueError:
                detail = "Error"
            raise HTTPException(e.status_code, detail) from None

        if isinstance(result, Redirect):
            return RedirectResponse(result.location, status_code=302)

        if isinstance(result, ProxiedBody):
            return ClosingStreamingResponse(
                result.body,
                media_type=result.media_type,
                headers={"Content-Disposition": "inline"},
            )

        if isinstance(result, FileDownload):
            return ClosingStreamingResponse(
                result.body,
                media_type=result.media_type,
                headers={"Content-Disposition": content_disposition(result.filename)},
            )

        raise HTTPException(500)
