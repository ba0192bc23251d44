"""Prompts for translating localization strings."""

from typing import Dict, List, Optional

from ..workflows.translation_state import BatchItem, BatchRequest, ContextEntry


LANGUAGE_NAMES: Dict[str, str] = {
    "ar": "Arabic",
    "de": "German",
    "en": "English",
    "es": "Spanish",
    "fr": "French",
    "hi": "Hindi",
    "id": "Indonesian",
    "it": "Italian",
    "ja": "Japanese",
    "ko": "Korean",
    "nl": "Dutch",
    "pl": "Polish",
    "pt": "Portuguese",
    "pt_br": "Brazilian Portuguese",
    "ru": "Russian",
    "th": "Thai",
    "tr": "Turkish",
    "uk": "Ukrainian",
    "vi": "Vietnamese",
    "zh": "Chinese",
    "zh_cn": "Simplified Chinese",
    "zh_tw": "Traditional Chinese",
}


LOCALIZATION_SYSTEM_PROMPT = """You are a professional software localizer. Translate user interface strings from {source_language} ({source_locale}) into {target_language} ({target_locale}).

REQUIREMENTS:
- Translate every string you are given; never skip one
- Keep placeholders such as :name, {{count}}, %s and %d exactly as written
- Keep HTML and other markup exactly as written; translate only the human-readable text
- Keep pipe-separated plural variants in the same order and count
- Use the tone a native speaker expects in a software product
{rules_section}
OUTPUT FORMAT - RESPOND ONLY WITH THIS STRUCTURE:
<translations>
  <item>
    <key>KEY EXACTLY AS GIVEN</key>
    <trx><![CDATA[TRANSLATED TEXT]]></trx>
  </item>
</translations>

- Copy each key exactly, including any prefix before the first dot
- Wrap every translation in <![CDATA[ and ]]> and do not escape its content
- If a translation needs a note for a reviewer, add <comment><![CDATA[NOTE]]></comment> after <trx>
- Do not add any text before <translations> or after </translations>
{context_section}"""


LOCALIZATION_USER_PROMPT = """Translate the following {count} string(s) into {target_language}.

{items}

Keys to return ({count}):
{keys}"""


def normalize_locale(locale: str) -> str:
    return (locale or "").strip().lower().replace("-", "_")


def language_name(locale: str) -> str:
    """Display name for a locale code, falling back to its base code and then the code itself."""
    code = normalize_locale(locale)
    return LANGUAGE_NAMES.get(code) or LANGUAGE_NAMES.get(code[:2]) or locale


def _format_rules(rules: List[str]) -> str:
    if not rules:
        return ""
    lines = "\n".join(f"- {rule}" for rule in rules)
    return f"\nADDITIONAL RULES FOR THIS LANGUAGE:\n{lines}\n"


def _format_context(context: Dict[str, Dict[str, ContextEntry]]) -> str:
    if not context:
        return ""
    blocks = []
    for file_name, entries in context.items():
        lines = []
        for key, entry in entries.items():
            if entry.target:
                lines.append(f"- {key}: \"{entry.source}\" => \"{entry.target}\"")
            else:
                lines.append(f"- {key}: \"{entry.source}\"")
        if lines:
            blocks.append(f"File: {file_name}\n" + "\n".join(lines))
    if not blocks:
        return ""
    return "\nEXISTING TRANSLATIONS (keep terminology consistent with these):\n" + "\n\n".join(blocks) + "\n"


def _format_item(key: str, item: BatchItem) -> str:
    lines = [f"Key: {key}", f"Text: {item.text}"]
    if item.context:
        lines.append(f"Context: {item.context}")
    for locale, reference in item.references.items():
        lines.append(f"Reference ({language_name(locale)}): {reference}")
    return "\n".join(lines)


def build_system_prompt(batch: BatchRequest) -> str:
    return LOCALIZATION_SYSTEM_PROMPT.format(
        source_language=language_name(batch.source_locale),
        source_locale=batch.source_locale,
        target_language=language_name(batch.target_locale),
        target_locale=batch.target_locale,
        rules_section=_format_rules(batch.additional_rules),
        context_section=_format_context(batch.translation_context),
    )


def build_user_prompt(batch: BatchRequest, keys: Optional[Dict[str, str]] = None) -> str:
    """
    Render the items of a batch.

    Args:
        batch: Batch to render
        keys: Map from original key to the key the model should see; the
            original keys are used when omitted
    """
    keys = keys or {key: key for key in batch.items}
    items = "\n\n".join(_format_item(keys[key], item) for key, item in batch.items.items())
    return LOCALIZATION_USER_PROMPT.format(
        count=len(batch.items),
        target_language=language_name(batch.target_locale),
        items=items,
        keys="\n".join(keys[key] for key in batch.items),
    )
