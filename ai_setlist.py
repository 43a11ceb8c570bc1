import json
import re

import requests

OPENAI_CHAT_URL = "https://api.openai.com/v1/chat/completions"

SYSTEM_PROMPT = (
    "You are an expert music curator and setlist builder for live bands. "
    "You understand song flow, energy management, and audience engagement. "
    "Always return valid JSON in the exact format requested."
)


class AISetlistError(Exception):
    """The text-generation API could not produce a usable setlist."""

    def __init__(self, message: str, status_code: int = 502):
        super().__init__(message)
        self.status_code = status_code


def _prompt_song(song: dict) -> dict:
    return {
        "id": song["id"],
        "title": song.get("title"),
        "artist": song.get("artist"),
        "duration": song.get("duration"),
        "key": song.get("key"),
        "language": song.get("language") or "english",
        "energy": song.get("energy") or "Medium",
        "vocalist": song.get("vocalist") or "Both",
        "tags": song.get("tags") or [],
        "notes": song.get("notes") or "",
    }


def build_setlist_prompt(songs: list[dict], options: dict) -> str:
    """Render the user prompt from the catalog and the builder options."""
    exclude = [str(s) for s in options.get("excludeSongs") or []]
    include = [str(s) for s in options.get("includeSongs") or []]
    custom = str(options.get("customInstructions") or "").strip()

    lines = [
        "You are building a setlist for a live band performance. Here are the available songs:",
        "",
        json.dumps([_prompt_song(s) for s in songs], indent=2, ensure_ascii=False),
        "",
        "REQUIREMENTS:",
        f"- Target Duration: {options.get('duration') or 45} minutes",
        f"- English Songs: {options.get('englishPercentage', 50)}% of the setlist",
        f"- Energy Mix: {options.get('energyMix') or 'Balanced'} "
        '(e.g., "Balanced", "High Energy", "Mellow", "Building")',
        f"- Singer Balance: {options.get('singerBalance') or 'Equal'}",
        f"- Vibe: {options.get('vibe') or 'Crowd-pleasing'}",
    ]
    if exclude:
        lines.append(f"- EXCLUDE these songs: {', '.join(exclude)}")
    if include:
        lines.append(f"- MUST INCLUDE these songs: {', '.join(include)}")
    if custom:
        lines.append(f"- Additional Instructions: {custom}")
    lines += [
        "",
        "SETLIST BUILDING PRINCIPLES:",
        "1. Start with a strong opener to grab attention",
        "2. Build energy gradually in the first third",
        "3. Peak energy in the middle section",
        "4. Strategic slower songs for audience connection",
        "5. Strong closer that leaves them wanting more",
        "6. Consider key changes and instrument changes between songs",
        "7. Account for performer stamina and vocal rest",
        "8. NEVER repeat the same song - each song should appear only once in the setlist",
        "",
        "Return your response as valid JSON in this exact format:",
        json.dumps({
            "name": "Generated Setlist Name",
            "songs": [{"id": "song_id_from_database", "position": 1,
                       "reasoning": "Why this song is in this position"}],
            "totalDuration": "estimated_duration_in_minutes",
            "reasoning": "Overall explanation of the setlist flow and strategy",
            "alternativeSongs": [{"id": "backup_song_id",
                                  "reasoning": "When/why to use this alternative"}],
        }, indent=2),
    ]
    return "\n".join(lines)


def parse_setlist_response(content: str | None) -> dict:
    """Decode the model's JSON, falling back to the outermost {...} block."""
    if not content:
        raise AISetlistError("Empty response from AI service")
    try:
        data = json.loads(content)
    except json.JSONDecodeError:
        match = re.search(r"\{.*\}", content, re.DOTALL)
        if not match:
            raise AISetlistError("Could not parse AI response as JSON")
        try:
            data = json.loads(match.group(0))
        except json.JSONDecodeError as exc:
            raise AISetlistError("Could not parse AI response as JSON") from exc
    if not isinstance(data, dict) or not isinstance(data.get("songs"), list):
        raise AISetlistError("AI response did not contain a song list")
    return data


def request_setlist(prompt: str, *, api_key: str | None, model: str, timeout: int = 60) -> dict:
    """Call the chat completions API and return the parsed setlist JSON."""
    if not api_key:
        raise AISetlistError("AI setlist builder is not configured (missing OPENAI_API_KEY)", 503)
    try:
        resp = requests.post(
            OPENAI_CHAT_URL,
            headers={
                "Authorization": f"Bearer {api_key}",
                "Content-Type": "application/json",
            },
            json={
                "model": model,
                "messages": [
                    {"role": "system", "content": SYSTEM_PROMPT},
                    {"role": "user", "content": prompt},
                ],
                "temperature": 0.7,
                "max_tokens": 2000,
                "response_format": {"type": "json_object"},
            },
            timeout=timeout,
        )
    except requests.RequestException as exc:
        raise AISetlistError(f"AI service unreachable: {exc}") from exc

    if resp.status_code != 200:
        try:
            err_message = resp.json().get("error", {}).get("message") or resp.text
        except ValueError:
            err_message = resp.text
        raise AISetlistError(f"AI service error ({resp.status_code}): {err_message}")

    try:
        payload = resp.json()
    except ValueError as exc:
        raise AISetlistError("AI service returned invalid JSON") from exc
    content = (payload.get("choices") or [{}])[0].get("message", {}).get("content")
    return parse_setlist_response(content)
