"""Gemini Provider 适配器。

使用 generateContent REST 端点：
- URL: {base_url}/models/{model}:generateContent
- 认证: 查询参数 ?key=<api_key>

本实现只依赖公共字段：contents/systemInstruction/tools/generationConfig/safetySettings，
响应侧解析 candidates[0].content、finishReason、groundingMetadata 与 usageMetadata。
"""

from typing import Any, Dict, List, Optional

import httpx

from agentnamix.config.settings import settings
from agentnamix.domain.exceptions import (
    NetworkError,
    NetworkTimeoutError,
    ProviderError,
    RateLimitError,
    ValidationError,
)
from agentnamix.domain.models import (
    FunctionResponse,
    GenerateRequest,
    GenerateResult,
    GroundingChunk,
    InlineData,
    Part,
    Turn,
    Usage,
)
from agentnamix.providers.registry import GEMINI_CONFIG
from agentnamix.tools.definitions import ToolCall, ToolDef


SAFETY_CATEGORIES = (
    "HARM_CATEGORY_HATE_SPEECH",
    "HARM_CATEGORY_SEXUALLY_EXPLICIT",
    "HARM_CATEGORY_HARASSMENT",
    "HARM_CATEGORY_DANGEROUS_CONTENT",
)

RATE_LIMIT_MARKERS = ("RESOURCE_EXHAUSTED", "quota")


class GeminiClient:
    """Gemini Provider 客户端实现。"""

    name = "gemini"

    def __init__(self, cfg=settings):
        self._settings = cfg

    def generate(self, req: GenerateRequest) -> GenerateResult:
        api_key = getattr(self._settings, "gemini_api_key", None)
        if not api_key:
            raise ValidationError(code="MISSING_API_KEY", message="GEMINI_API_KEY not set")
        payload = self._build_payload(req)
        base = getattr(self._settings, "gemini_base_url", None) or GEMINI_CONFIG.base_url
        try:
            with httpx.Client(timeout=self._settings.http_timeout, trust_env=False) as client:
                resp = client.post(
                    f"{base}/models/{req.model}:generateContent",
                    params={"key": api_key},
                    json=payload,
                    headers={"Content-Type": "application/json"},
                )
        except httpx.TimeoutException as e:
            raise NetworkTimeoutError(code="PROVIDER_TIMEOUT", message=str(e) or "Gemini request timed out")
        except httpx.RequestError as e:
            raise NetworkError(code="NETWORK_ERROR", message=str(e))
        if resp.status_code == 429:
            raise RateLimitError(code="RATE_LIMIT", message=f"Gemini rate limit (429): {resp.text[:200]}")
        if resp.status_code >= 400:
            body = resp.text or ""
            if any(marker in body for marker in RATE_LIMIT_MARKERS):
                raise RateLimitError(code="RATE_LIMIT", message=f"Gemini quota exhausted: {body[:200]}")
            raise ProviderError(code="API_ERROR", message=body, http_status=resp.status_code)
        try:
            data = resp.json()
        except ValueError:
            raise ProviderError(
                code="INVALID_RESPONSE",
                message=f"Gemini returned a non-JSON body: {(resp.text or '')[:200]}",
                http_status=resp.status_code,
            )
        return self._parse_response(data, req)

    # ---- 辅助方法 ----

    def _build_payload(self, req: GenerateRequest) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "contents": [self._turn_to_payload(t) for t in req.contents],
            "safetySettings": [
                {"category": category, "threshold": "BLOCK_NONE"} for category in SAFETY_CATEGORIES
            ],
        }
        if req.system_instruction:
            payload["systemInstruction"] = {"parts": [{"text": req.system_instruction}]}

        tools: List[Dict[str, Any]] = []
        if req.native_search:
            tools.append({"googleSearch": {}})
        if req.tools:
            tools.append({"functionDeclarations": [self._serialize_tool(t) for t in req.tools]})
        if tools:
            payload["tools"] = tools

        generation: Dict[str, Any] = {"temperature": req.temperature}
        if req.response_mime_type:
            generation["responseMimeType"] = req.response_mime_type
        if req.response_schema:
            generation["responseSchema"] = req.response_schema
        payload["generationConfig"] = generation
        return payload

    def _turn_to_payload(self, turn: Turn) -> Dict[str, Any]:
        parts: List[Dict[str, Any]] = []
        for part in turn.parts:
            item: Dict[str, Any] = {}
            if part.text is not None:
                item["text"] = part.text
            elif part.inline_data is not None:
                item["inlineData"] = {"mimeType": part.inline_data.mime_type, "data": part.inline_data.data}
            elif part.function_call is not None:
                call: Dict[str, Any] = {"name": part.function_call.name, "args": part.function_call.arguments}
                if part.function_call.id:
                    call["id"] = part.function_call.id
                item["functionCall"] = call
            elif part.function_response is not None:
                resp: Dict[str, Any] = {
                    "name": part.function_response.name,
                    "response": part.function_response.response,
                }
                if part.function_response.id:
                    resp["id"] = part.function_response.id
                item["functionResponse"] = resp
            if part.thought_signature:
                item["thoughtSignature"] = part.thought_signature
            if item:
                parts.append(item)
        return {"role": turn.role, "parts": parts}

    def _parse_response(self, data: Dict[str, Any], req: GenerateRequest) -> GenerateResult:
        candidates = data.get("candidates") or []
        candidate = candidates[0] if candidates else {}
        turn = self._parse_content(candidate.get("content"))

        grounding: List[GroundingChunk] = []
        metadata = candidate.get("groundingMetadata") or {}
        for chunk in metadata.get("groundingChunks") or []:
            web = chunk.get("web") or {}
            grounding.append(GroundingChunk(uri=web.get("uri"), title=web.get("title")))

        usage = None
        usage_raw = data.get("usageMetadata") or {}
        if usage_raw:
            usage = Usage(
                prompt_tokens=usage_raw.get("promptTokenCount", 0),
                completion_tokens=usage_raw.get("candidatesTokenCount", 0),
                total_tokens=usage_raw.get("totalTokenCount", 0),
            )
        return GenerateResult(
            model=req.model,
            turn=turn,
            finish_reason=candidate.get("finishReason"),
            grounding_chunks=grounding,
            usage=usage,
            raw=data,
        )

    def _parse_content(self, content: Optional[Dict[str, Any]]) -> Optional[Turn]:
        """解析 candidate.content；没有任何 part 时返回 None。"""

        if not content or not content.get("parts"):
            return None
        parts: List[Part] = []
        for raw in content["parts"]:
            if raw.get("thought"):
                # 思考摘要不进入对话
                continue
            signature = raw.get("thoughtSignature")
            if "functionCall" in raw:
                fc = raw["functionCall"] or {}
                parts.append(
                    Part(
                        function_call=ToolCall(
                            id=fc.get("id"),
                            name=fc.get("name") or "",
                            arguments=fc.get("args") or {},
                        ),
                        thought_signature=signature,
                    )
                )
            elif "functionResponse" in raw:
                fr = raw["functionResponse"] or {}
                parts.append(
                    Part(
                        function_response=FunctionResponse(
                            name=fr.get("name") or "",
                            response=fr.get("response") or {},
                            id=fr.get("id"),
                        )
                    )
                )
            elif "inlineData" in raw:
                inline = raw["inlineData"] or {}
                parts.append(
                    Part(inline_data=InlineData(mime_type=inline.get("mimeType", ""), data=inline.get("data", "")))
                )
            elif "text" in raw:
                parts.append(Part(text=raw.get("text") or "", thought_signature=signature))
        return Turn(role="model", parts=parts)

    def _serialize_tool(self, tool: ToolDef) -> Dict[str, Any]:
        properties: Dict[str, Any] = {}
        required: List[str] = []
        for name, param in tool.params.items():
            schema = param.schema or {"type": "string"}
            if param.description:
                schema = {**schema, "description": param.description}
            properties[name] = schema
            if param.required:
                required.append(name)
        return {
            "name": tool.name,
            "description": tool.description,
            "parameters": {
                "type": "object",
                "properties": properties,
                "required": required,
            },
        }
