"""Caption hashtag helpers for generated carousels."""

FIXED_HASHTAGS = ("#luxuryhandbag", "#bagoftheday", "#designer", "#fashion")

BAG_HASHTAG_MAP = {
    "hermes": "#hermes #birkin",
    "lv": "#louisvuitton #speedy",
    "chanel": "#chanel #flap",
    "gucci": "#gucci",
    "birkin": "#birkin",
    "speedy": "#speedy",
    "flap": "#chanelflap",
}


def extract_bag_name(file_name: str) -> str:
    """Return the lower-cased segment before the first `-` of a library file name."""
    return file_name.split("-")[0].lower()


def generate_hashtags(bag_name: str) -> str:
    tags = list(FIXED_HASHTAGS)
    bag_tags = BAG_HASHTAG_MAP.get(bag_name)
    if bag_tags:
        tags.append(bag_tags)
    return " ".join(tags)
