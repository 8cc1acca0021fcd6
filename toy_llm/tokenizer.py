"""
Word-Level Tokenizer

The toy model works on whole words. A vocabulary maps each lower-cased word
to an integer id; ids are handed out in insertion order and never reused or
reassigned, so a vocabulary only ever grows.

Text normalization:
    1. Lower-case the text
    2. Remove the punctuation characters . , ! ?
    3. Split on whitespace and drop empty words

Classes:
    Vocabulary: Append-only word <-> id mapping

Functions:
    normalize: Text -> list of normalized words
    tokenize: Text -> list of ids (unknown words dropped)
    detokenize: Id -> word, or "<id>" if no word has that id
    corpus_words: Sorted unique words of a corpus
    build_vocabulary: Assign ids to every word of a corpus
"""

import re
from typing import Dict, Iterable, Iterator, List, Mapping, Optional

_PUNCTUATION = re.compile(r"[.,!?]")


def normalize(text: str) -> List[str]:
    """
    Split text into normalized words.

    Example:
        >>> normalize("The cat sat.")
        ['the', 'cat', 'sat']
    """
    return [word for word in _PUNCTUATION.sub("", text.lower()).split() if word]


def tokenize(text: str, vocabulary: Mapping[str, int]) -> List[int]:
    """
    Convert text to token ids.

    Words that are not in the vocabulary are silently dropped.

    Args:
        text: Raw text
        vocabulary: Word to id mapping (a dict or a Vocabulary)

    Returns:
        Token ids in text order

    Example:
        >>> tokenize("The cat sat.", {"the": 0, "cat": 1, "sat": 2})
        [0, 1, 2]
    """
    return [vocabulary[word] for word in normalize(text) if word in vocabulary]


def detokenize(token_id: int, vocabulary: Mapping[str, int]) -> str:
    """
    Look up the word for a token id.

    This is a linear scan over the vocabulary.

    Returns:
        The word, or the placeholder "<token_id>" if no word has that id
    """
    for word, word_id in vocabulary.items():
        if word_id == token_id:
            return word
    return f"<{token_id}>"


class Vocabulary(Mapping[str, int]):
    """
    Append-only mapping from words to token ids.

    The next id is always the current size, so ids stay contiguous in
    [0, len(vocabulary)) and the vocabulary size can be used directly as the
    number of embedding rows.

    Example:
        >>> vocab = Vocabulary()
        >>> vocab.add("the")
        0
        >>> vocab.add("cat")
        1
        >>> vocab.add("the")  # already present, id unchanged
        0
    """

    def __init__(self, words: Optional[Iterable[str]] = None):
        self._word_to_id: Dict[str, int] = {}
        self._id_to_word: List[str] = []
        if words is not None:
            self.add_all(words)

    def add(self, word: str) -> int:
        """Return the id of word, assigning the next free id if it is new."""
        if word in self._word_to_id:
            return self._word_to_id[word]
        token_id = len(self._id_to_word)
        self._word_to_id[word] = token_id
        self._id_to_word.append(word)
        return token_id

    def add_all(self, words: Iterable[str]) -> List[int]:
        return [self.add(word) for word in words]

    def word_for(self, token_id: int) -> str:
        """Constant-time reverse lookup with the same placeholder as detokenize."""
        if 0 <= token_id < len(self._id_to_word):
            return self._id_to_word[token_id]
        return f"<{token_id}>"

    def __getitem__(self, word: str) -> int:
        return self._word_to_id[word]

    def __iter__(self) -> Iterator[str]:
        return iter(self._id_to_word)

    def __len__(self) -> int:
        return len(self._id_to_word)

    def __contains__(self, word: object) -> bool:
        return word in self._word_to_id

    def __repr__(self) -> str:
        return f"Vocabulary({self._word_to_id!r})"

    def to_dict(self) -> Dict[str, int]:
        return dict(self._word_to_id)

    @classmethod
    def from_dict(cls, mapping: Mapping[str, int]) -> "Vocabulary":
        """
        Rebuild a vocabulary from a word to id mapping.

        Raises:
            ValueError: If the ids are not exactly 0 .. len(mapping) - 1
        """
        ordered = sorted(mapping.items(), key=lambda item: item[1])
        if [token_id for _, token_id in ordered] != list(range(len(ordered))):
            raise ValueError("Vocabulary ids must be unique and contiguous from 0")
        return cls(word for word, _ in ordered)


def corpus_words(corpus: Iterable[str]) -> List[str]:
    """All unique normalized words of a corpus, sorted alphabetically."""
    words = set()
    for sentence in corpus:
        words.update(normalize(sentence))
    return sorted(words)


def build_vocabulary(
    corpus: Iterable[str], vocabulary: Optional[Mapping[str, int]] = None
) -> Vocabulary:
    """
    Assign ids to every word of a corpus.

    Existing assignments are kept; words not yet in the vocabulary get the
    next ids in alphabetical order.

    Args:
        corpus: Sentences to read words from
        vocabulary: Optional existing mapping to extend (not modified)

    Returns:
        A new Vocabulary containing every corpus word
    """
    result = Vocabulary.from_dict(vocabulary) if vocabulary is not None else Vocabulary()
    result.add_all(corpus_words(corpus))
    return result


if __name__ == "__main__":
    print("=" * 70)
    print("TOKENIZER DEMO - Words to Ids")
    print("=" * 70)
    print()

    corpus = ["The cat sat on the mat.", "The dog ran!"]
    vocabulary = build_vocabulary(corpus)

    print("Vocabulary (alphabetical ids):")
    for word in vocabulary:
        print(f"  {vocabulary[word]:2d} -> {word}")
    print()

    text = "The cat chased the dog."
    token_ids = tokenize(text, vocabulary)
    print(f"Text:      {text!r}")
    print(f"Words:     {normalize(text)}")
    print(f"Token ids: {token_ids}  ('chased' is unknown and dropped)")
    print(f"Decoded:   {[detokenize(token_id, vocabulary) for token_id in token_ids]}")
    print(f"Unknown id 99 decodes to {detokenize(99, vocabulary)!r}")
    print()

    vocabulary = build_vocabulary(corpus + ["A bird flew."], vocabulary)
    print("Growing the vocabulary keeps existing ids:")
    print(f"  'the' is still {vocabulary['the']}, 'bird' is new at {vocabulary['bird']}")
    print()
    print("=" * 70)
