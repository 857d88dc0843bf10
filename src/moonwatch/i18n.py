"""Simple two-language (ko/en) translation helper."""

_STRINGS: dict[str, dict[str, str]] = {
    "phase_new_moon": {
        "ko": "삭",
        "en": "New Moon",
    },
    "phase_waxing_crescent": {
        "ko": "초승달",
        "en": "Waxing Crescent",
    },
    "phase_first_quarter": {
        "ko": "상현달",
        "en": "First Quarter",
    },
    "phase_waxing_gibbous": {
        "ko": "차오르는 달",
        "en": "Waxing Gibbous",
    },
    "phase_full_moon": {
        "ko": "보름달",
        "en": "Full Moon",
    },
    "phase_waning_gibbous": {
        "ko": "기우는 달",
        "en": "Waning Gibbous",
    },
    "phase_last_quarter": {
        "ko": "하현달",
        "en": "Last Quarter",
    },
    "phase_waning_crescent": {
        "ko": "그믐달",
        "en": "Waning Crescent",
    },
    "error_location_required": {
        "ko": "장소를 입력해주세요. 예: \"90210\", \"Los Angeles\", \"Austin, TX\"",
        "en": 'Location is required. Try: "90210", "Los Angeles", "Austin, TX"',
    },
    "error_location": {
        "ko": "장소를 찾을 수 없어요: {location}. 우편번호(90210), 도시(Los Angeles), 도시와 주(Los Angeles, CA) 형식으로 입력해보세요. ({error})",
        "en": "Location not found: {location}. Try: ZIP code (90210), City (Los Angeles), or City, State (Los Angeles, CA). ({error})",
    },
    "error_date_format": {
        "ko": "날짜 형식이 올바르지 않아요: {value} (YYYY-MM-DD)",
        "en": "Invalid date: {value} (expected YYYY-MM-DD)",
    },
    "error_time_format": {
        "ko": "시각 형식이 올바르지 않아요: {value} (HH:MM 또는 \"until sunrise\")",
        "en": 'Invalid time: {value} (expected HH:MM or "until sunrise")',
    },
    "error_range_partial": {
        "ko": "시작일과 종료일을 함께 입력해주세요.",
        "en": "Both fromDate and toDate are required when either is given.",
    },
    "error_range_order": {
        "ko": "종료일({to_date})이 시작일({from_date})보다 빨라요.",
        "en": "toDate ({to_date}) is before fromDate ({from_date}).",
    },
    "error_range_too_large": {
        "ko": "기간이 너무 길어요. 최대 {max_days}일까지 가능해요. (요청: {requested_days}일)",
        "en": "Date range too large. Maximum {max_days} days allowed (requested {requested_days}).",
    },
    "error_days": {
        "ko": "일수는 0에서 {max_days} 사이여야 해요: {value}",
        "en": "days must be between 0 and {max_days}: {value}",
    },
    "error_coordinates": {
        "ko": "좌표가 올바르지 않아요: lat={lat}, lng={lng}",
        "en": "Invalid coordinates: lat={lat}, lng={lng}",
    },
    "error_setting": {
        "ko": "설정값이 올바르지 않아요: {name}={value}",
        "en": "Invalid setting: {name}={value}",
    },
    "scan_summary": {
        "ko": "{location}: {days}일 동안 밤에 뜨는 달 {count}회",
        "en": "{location}: {count} nighttime moonrises in {days} days",
    },
    "scan_empty": {
        "ko": "이 기간에는 밤에 뜨는 달이 없어요.",
        "en": "No nighttime moonrises in this range.",
    },
}


def t(key: str, lang: str) -> str:
    """Return the translated string for key in lang.

    Falls back to 'en', then to the key itself if not found.
    """
    entry = _STRINGS.get(key)
    if entry is None:
        return key
    return entry.get(lang) or entry.get("en") or key
