from flask import Blueprint, current_app, jsonify

from ai_setlist import AISetlistError, build_setlist_prompt, request_setlist
from guards import core_member_required
from models import db, Setlist, utcnow
from routes.helpers import as_bool, candidate_list, json_body, load_catalog
from setlist_builder import assemble_setlist, setlist_metrics

ai_bp = Blueprint("ai", __name__, url_prefix="/api/ai-setlist")

OPTION_KEYS = (
    "duration",
    "englishPercentage",
    "energyMix",
    "singerBalance",
    "vibe",
    "excludeSongs",
    "includeSongs",
    "customInstructions",
)


@ai_bp.post("")
@core_member_required
def generate_setlist():
    data = json_body()
    options = {k: data[k] for k in OPTION_KEYS if k in data}
    for key in ("excludeSongs", "includeSongs"):
        if key in options:
            options[key] = candidate_list(options[key], key)

    catalog = load_catalog()
    if not catalog:
        return jsonify({"error": "No songs found in database"}), 400

    excluded = {str(s) for s in options.get("excludeSongs") or []}
    songs = [s for s in catalog.values() if s["id"] not in excluded]
    prompt = build_setlist_prompt(songs, options)

    cfg = current_app.config
    current_app.logger.info("Requesting AI setlist from %s over %d songs", cfg["OPENAI_MODEL"], len(songs))
    try:
        suggestion = request_setlist(
            prompt,
            api_key=cfg["OPENAI_API_KEY"],
            model=cfg["OPENAI_MODEL"],
            timeout=cfg["OPENAI_TIMEOUT"],
        )
    except AISetlistError as exc:
        current_app.logger.warning("AI setlist generation failed: %s", exc)
        return jsonify({"error": "Failed to generate setlist", "details": str(exc)}), exc.status_code

    assembled = assemble_setlist(suggestion["songs"], catalog)
    if assembled.dropped:
        current_app.logger.info("AI setlist: dropped %d unknown or repeated songs", assembled.dropped)

    chosen = set(assembled.song_ids)
    alternatives = assemble_setlist(
        [a for a in suggestion.get("alternativeSongs") or [] if isinstance(a, dict) and str(a.get("id")) not in chosen],
        catalog,
    ).songs

    setlist = {
        "name": suggestion.get("name") or "AI Setlist",
        "songs": assembled.songs,
        "reasoning": suggestion.get("reasoning") or "",
        "alternativeSongs": alternatives,
        "createdAt": utcnow().isoformat(),
        "createdBy": "AI Assistant",
    }
    result = {
        "success": True,
        "setlist": setlist,
        "metadata": {**setlist_metrics(assembled.songs), "dropped": assembled.dropped},
    }

    if as_bool(data.get("save")):
        saved = Setlist(
            name=setlist["name"],
            song_ids=assembled.song_ids,
            created_by="AI Assistant",
            meta={
                "reasoning": setlist["reasoning"],
                "options": options,
                "songNotes": {s["id"]: {"reasoning": s["reasoning"]} for s in assembled.songs if s.get("reasoning")},
            },
        )
        db.session.add(saved)
        db.session.commit()
        result["savedSetId"] = saved.id

    return jsonify(result)
