def nameify(token: str) -> str:
    """Turn a tag value like 'fast_food' into 'Fast Food'."""
    return " ".join(word[:1].upper() + word[1:] for word in token.split("_"))
