"""Google provider adapter: Gmail and Google Sheets over their REST APIs."""

from __future__ import annotations

import base64
import json
import logging
from email.message import EmailMessage
from typing import Any, Callable, Dict, List, Optional
from urllib.parse import quote

from automation_engine.core.context import ExecutionContext
from automation_engine.core.exceptions import AdapterError
from automation_engine.models import CredentialBundle, CredentialType
from automation_engine.services.http_client import error_for_status

from .base import HTTPProviderAdapter, as_list, coerce_int

logger = logging.getLogger(__name__)

GMAIL_API_URL = "https://gmail.googleapis.com/gmail/v1/users/me"
SHEETS_API_URL = "https://sheets.googleapis.com/v4/spreadsheets"

GMAIL_SCOPES = ("https://www.googleapis.com/auth/gmail.modify",)
SHEETS_SCOPES = ("https://www.googleapis.com/auth/spreadsheets",)

TokenProvider = Callable[[CredentialBundle, tuple], str]


class GoogleAdapter(HTTPProviderAdapter):
    provider_id = "google"
    supported_operations = (
        "gmail.send",
        "gmail.read",
        "gmail.list",
        "sheets.appendRow",
        "sheets.updateRow",
        "sheets.findRow",
        "sheets.getRows",
        "sheets.deleteRow",
    )

    def __init__(
        self,
        http_client,
        timeout: float = 30.0,
        token_provider: Optional[TokenProvider] = None,
        gmail_url: str = GMAIL_API_URL,
        sheets_url: str = SHEETS_API_URL,
    ):
        super().__init__(http_client, timeout)
        self.token_provider = token_provider
        self.gmail_url = gmail_url.rstrip("/")
        self.sheets_url = sheets_url.rstrip("/")

    def handle_operation(
        self,
        operation: str,
        config: Dict[str, Any],
        credential: Optional[CredentialBundle],
        context: ExecutionContext,
    ) -> Any:
        scopes = GMAIL_SCOPES if operation.startswith("gmail.") else SHEETS_SCOPES
        token = self._access_token(credential, scopes)
        handler = {
            "gmail.send": self._gmail_send,
            "gmail.read": self._gmail_read,
            "gmail.list": self._gmail_list,
            "sheets.appendRow": self._sheets_append_row,
            "sheets.updateRow": self._sheets_update_row,
            "sheets.findRow": self._sheets_find_row,
            "sheets.getRows": self._sheets_get_rows,
            "sheets.deleteRow": self._sheets_delete_row,
        }[operation]
        return handler(config, token, context)

    # Auth

    def _access_token(self, credential: CredentialBundle, scopes: tuple) -> str:
        if credential.type == CredentialType.OAUTH2 and credential.access_token:
            return credential.access_token
        if credential.type == CredentialType.SERVICE_ACCOUNT:
            if self.token_provider is None:
                raise AdapterError(
                    "INVALID_CREDENTIALS", "No token provider configured for service accounts"
                )
            return self.token_provider(credential, scopes)
        raise AdapterError("INVALID_CREDENTIALS", "Google requires OAuth or service account credentials")

    def _call(
        self,
        method: str,
        url: str,
        token: str,
        context: ExecutionContext,
        *,
        params: Optional[Dict[str, Any]] = None,
        json_body: Optional[Any] = None,
    ) -> Dict[str, Any]:
        headers = {"Authorization": f"Bearer {token}"}
        if json_body is not None:
            headers["Content-Type"] = "application/json"
        resp = self.http.request(
            method,
            url,
            headers=headers,
            params=params,
            json_body=json_body,
            timeout=self.effective_timeout(context, self.timeout),
        )
        err = error_for_status(resp)
        if err is not None:
            raise err
        return resp.json if isinstance(resp.json, dict) else {}

    # Gmail

    @staticmethod
    def build_mime_message(cfg: Dict[str, Any]) -> str:
        msg = EmailMessage()
        if cfg.get("from"):
            msg["From"] = str(cfg["from"])
        msg["To"] = ", ".join(str(t) for t in as_list(cfg.get("to")))
        for key, header in (("cc", "Cc"), ("bcc", "Bcc")):
            values = as_list(cfg.get(key))
            if values:
                msg[header] = ", ".join(str(v) for v in values)
        if cfg.get("replyTo"):
            msg["Reply-To"] = str(cfg["replyTo"])
        msg["Subject"] = str(cfg.get("subject") or "(No Subject)")
        msg.set_content(str(cfg.get("body") or cfg.get("text") or ""))
        if cfg.get("html"):
            msg.add_alternative(str(cfg["html"]), subtype="html")
        return base64.urlsafe_b64encode(msg.as_bytes()).decode().rstrip("=")

    def _gmail_send(self, cfg: Dict[str, Any], token: str, context: ExecutionContext):
        to = as_list(cfg.get("to"))
        if not to:
            raise AdapterError("VALIDATION_ERROR", "Recipient (to) is required")
        raw = self.build_mime_message(cfg)
        logger.info(f"📧 Gmail send to {len(to)} recipient(s)")
        result = self._call("POST", f"{self.gmail_url}/messages/send", token, context, json_body={"raw": raw})
        return {
            "success": True,
            "messageId": result.get("id"),
            "threadId": result.get("threadId"),
            "to": to,
            "subject": cfg.get("subject") or "(No Subject)",
        }

    def _gmail_read(self, cfg: Dict[str, Any], token: str, context: ExecutionContext):
        message_id = cfg.get("messageId")
        if not message_id:
            raise AdapterError("VALIDATION_ERROR", "Message ID is required")
        message = self._call(
            "GET",
            f"{self.gmail_url}/messages/{quote(str(message_id), safe='')}",
            token,
            context,
            params={"format": cfg.get("format") or "full"},
        )
        return parse_gmail_message(message)

    def _gmail_list(self, cfg: Dict[str, Any], token: str, context: ExecutionContext):
        params: Dict[str, Any] = {"maxResults": coerce_int(cfg.get("maxResults"), 10, "maxResults")}
        if cfg.get("query"):
            params["q"] = cfg["query"]
        if cfg.get("pageToken"):
            params["pageToken"] = cfg["pageToken"]
        data = self._call("GET", f"{self.gmail_url}/messages", token, context, params=params)
        return {
            "messages": data.get("messages") or [],
            "nextPageToken": data.get("nextPageToken"),
            "resultSizeEstimate": data.get("resultSizeEstimate", 0),
        }

    # Sheets

    def _values_url(self, spreadsheet_id: str, range_: str) -> str:
        return f"{self.sheets_url}/{quote(str(spreadsheet_id), safe='')}/values/{quote(range_, safe='')}"

    def _sheets_append_row(self, cfg: Dict[str, Any], token: str, context: ExecutionContext):
        spreadsheet_id = cfg["spreadsheetId"]
        sheet_name = cfg.get("sheetName") or "Sheet1"
        values = parse_row_values(cfg.get("values"))
        result = self._call(
            "POST",
            f"{self._values_url(spreadsheet_id, sheet_name)}:append",
            token,
            context,
            params={"valueInputOption": "USER_ENTERED", "insertDataOption": "INSERT_ROWS"},
            json_body={"values": [values]},
        )
        updates = result.get("updates") or {}
        logger.info(f"📊 Appended row to {spreadsheet_id}/{sheet_name}")
        return {
            "success": True,
            "spreadsheetId": spreadsheet_id,
            "updatedRange": updates.get("updatedRange"),
            "updatedRows": updates.get("updatedRows"),
            "updatedCells": updates.get("updatedCells"),
            "appendedRow": values,
        }

    def _sheets_update_row(self, cfg: Dict[str, Any], token: str, context: ExecutionContext):
        spreadsheet_id = cfg["spreadsheetId"]
        range_ = cfg.get("range")
        if not range_:
            row_number = coerce_int(cfg.get("rowNumber"), None, "rowNumber")
            if not row_number:
                raise AdapterError("VALIDATION_ERROR", "Either range or rowNumber is required")
            range_ = f"{cfg.get('sheetName') or 'Sheet1'}!A{row_number}"
        values = parse_row_values(cfg.get("values"))
        result = self._call(
            "PUT",
            self._values_url(spreadsheet_id, str(range_)),
            token,
            context,
            params={"valueInputOption": "USER_ENTERED"},
            json_body={"values": [values]},
        )
        return {
            "success": True,
            "spreadsheetId": spreadsheet_id,
            "updatedRange": result.get("updatedRange"),
            "updatedRows": result.get("updatedRows"),
            "updatedCells": result.get("updatedCells"),
        }

    def _sheets_get_rows(self, cfg: Dict[str, Any], token: str, context: ExecutionContext):
        spreadsheet_id = cfg["spreadsheetId"]
        range_ = cfg.get("range") or cfg.get("sheetName") or "Sheet1"
        result = self._call("GET", self._values_url(spreadsheet_id, str(range_)), token, context)
        values = result.get("values") or []
        return {
            "success": True,
            "spreadsheetId": spreadsheet_id,
            "range": result.get("range"),
            "rowCount": len(values),
            "rows": [{"rowNumber": i + 1, "values": row} for i, row in enumerate(values)],
        }

    def _sheets_find_row(self, cfg: Dict[str, Any], token: str, context: ExecutionContext):
        column_index = column_to_index(str(cfg["column"]))
        needle = str(cfg.get("value"))
        match_type = cfg.get("matchType") or "exact"
        rows = self._sheets_get_rows(
            {"spreadsheetId": cfg["spreadsheetId"], "sheetName": cfg.get("sheetName")}, token, context
        )["rows"]

        def _matches(row: Dict[str, Any]) -> bool:
            cells = row["values"]
            cell = str(cells[column_index]) if column_index < len(cells) else ""
            if match_type == "contains":
                return needle.lower() in cell.lower()
            if match_type == "startsWith":
                return cell.lower().startswith(needle.lower())
            return cell == needle

        matches = [row for row in rows if _matches(row)]
        return {
            "success": True,
            "found": bool(matches),
            "count": len(matches),
            "rows": matches,
            "firstMatch": matches[0] if matches else None,
        }

    def _sheets_delete_row(self, cfg: Dict[str, Any], token: str, context: ExecutionContext):
        spreadsheet_id = cfg["spreadsheetId"]
        row_index = coerce_int(cfg.get("rowIndex"), None, "rowIndex")
        if row_index is None:
            row_number = coerce_int(cfg.get("rowNumber"), None, "rowNumber")
            if not row_number:
                raise AdapterError("VALIDATION_ERROR", "Spreadsheet ID and row index are required")
            row_index = row_number - 1
        sheet_id = coerce_int(cfg.get("sheetId"), 0, "sheetId")
        self._call(
            "POST",
            f"{self.sheets_url}/{quote(str(spreadsheet_id), safe='')}:batchUpdate",
            token,
            context,
            json_body={
                "requests": [
                    {
                        "deleteDimension": {
                            "range": {
                                "sheetId": sheet_id,
                                "dimension": "ROWS",
                                "startIndex": row_index,
                                "endIndex": row_index + 1,
                            }
                        }
                    }
                ]
            },
        )
        return {"success": True, "spreadsheetId": spreadsheet_id, "deletedRowIndex": row_index}


def parse_row_values(values: Any) -> List[Any]:
    """A list, a JSON array string, or a comma separated string."""
    if isinstance(values, list):
        return values
    if values is None or values == "":
        raise AdapterError("VALIDATION_ERROR", "Values must be an array")
    text = str(values)
    try:
        parsed = json.loads(text)
    except ValueError:
        return [part.strip() for part in text.split(",")]
    return parsed if isinstance(parsed, list) else [text]


def column_to_index(column: str) -> int:
    """Spreadsheet column letters to a 0-based index (A -> 0, AA -> 26)."""
    letters = column.strip().upper()
    if not letters.isalpha():
        raise AdapterError("VALIDATION_ERROR", f"Invalid column: {column}")
    index = 0
    for ch in letters:
        index = index * 26 + (ord(ch) - ord("A") + 1)
    return index - 1


def _decode_body(data: str) -> str:
    padded = data + "=" * (-len(data) % 4)
    return base64.urlsafe_b64decode(padded.encode()).decode("utf-8", errors="replace")


def _extract_body(payload: Optional[Dict[str, Any]]) -> str:
    if not payload:
        return ""
    body = payload.get("body") or {}
    if body.get("data"):
        return _decode_body(body["data"])
    for part in payload.get("parts") or []:
        if part.get("mimeType") in ("text/plain", "text/html") and (part.get("body") or {}).get("data"):
            return _decode_body(part["body"]["data"])
        if part.get("parts"):
            nested = _extract_body(part)
            if nested:
                return nested
    return ""


def parse_gmail_message(message: Dict[str, Any]) -> Dict[str, Any]:
    payload = message.get("payload") or {}
    headers = {h.get("name", "").lower(): h.get("value", "") for h in payload.get("headers") or []}
    return {
        "id": message.get("id"),
        "threadId": message.get("threadId"),
        "labelIds": message.get("labelIds") or [],
        "snippet": message.get("snippet"),
        "from": headers.get("from", ""),
        "to": headers.get("to", ""),
        "subject": headers.get("subject", ""),
        "date": headers.get("date", ""),
        "body": _extract_body(payload),
    }


__all__ = [
    "GoogleAdapter",
    "parse_row_values",
    "column_to_index",
    "parse_gmail_message",
]
