"""PowerNaija energy token marketplace API."""
