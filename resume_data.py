import os
import sys
import logging

from bencode_errors import DecodeError
from bencode_items import BString
from bencoding import Settings, decode, encode

SAVE_PATH_KEY = b'qBt-savePath'

USAGE = """Usage:
  bencode-resume keys <resume.dat>
  bencode-resume paths <resume_dir>
  bencode-resume patch <resume_dir> <target_dir> <old> <new>"""


def _load_dictionary(path, settings=Settings.SORTED_DICTIONARIES):
    """
    Returns the top-level dictionary of a bencoded file, or None if the file
    does not start with one.
    """
    with open(path, 'rb') as f:
        data = f.read()
    items = decode(data, settings)
    if not items:
        return None
    return items[0].as_dictionary()


def _resume_files(source_dir):
    for name in sorted(os.listdir(source_dir)):
        path = os.path.join(source_dir, name)
        if os.path.isfile(path):
            yield path


def replace_save_paths(source_dir, target_dir, old, new):
    """
    Rewrites the save path of every resume file in `source_dir`, replacing
    the first occurrence of `old` with `new`, and writes the results into
    `target_dir` under the same names. Files that are not bencoded
    dictionaries are skipped. Returns the written paths.
    """
    old = old.encode('utf-8') if isinstance(old, str) else old
    new = new.encode('utf-8') if isinstance(new, str) else new
    os.makedirs(target_dir, exist_ok=True)

    written = []
    for path in _resume_files(source_dir):
        try:
            resume = _load_dictionary(path)
        except DecodeError as e:
            logging.error(f"Skipping {path}: {e}")
            continue
        if resume is None:
            logging.warning(f"Skipping {path}: not a dictionary")
            continue

        save_path = resume.get(SAVE_PATH_KEY)
        if save_path is not None and save_path.as_string() is not None:
            patched = save_path.data.replace(old, new, 1)
            resume = resume.with_item(SAVE_PATH_KEY, BString(patched))

        target = os.path.join(target_dir, os.path.basename(path))
        with open(target, 'wb') as f:
            f.write(encode(resume))
        written.append(target)
        logging.info(f"Wrote {target}")

    logging.info(f"Patched {len(written)} resume files into {target_dir}")
    return written


def read_save_paths(source_dir):
    """Yields (path, save_path) for every resume file carrying a save path."""
    for path in _resume_files(source_dir):
        try:
            resume = _load_dictionary(path)
        except DecodeError as e:
            logging.error(f"Skipping {path}: {e}")
            continue
        if resume is None:
            continue
        save_path = resume.get(SAVE_PATH_KEY)
        if save_path is not None and save_path.as_string() is not None:
            yield path, save_path


def list_keys(path, allow_unsorted=True):
    """
    Returns the keys of the top-level dictionary in `path`.

    Old uTorrent resume.dat files put ".fileguard" first, so their top-level
    dictionary is not sorted. Unsorted dictionaries are accepted by default;
    the keys still come back in sorted order.
    """
    settings = Settings.UNSORTED_DICTIONARIES if allow_unsorted else Settings.SORTED_DICTIONARIES
    resume = _load_dictionary(path, settings)
    if resume is None:
        raise ValueError(f"{path} does not hold a bencoded dictionary")
    return list(resume.keys())


def main(argv=None):
    argv = sys.argv[1:] if argv is None else argv

    logging.basicConfig(
        level=logging.INFO,
        format='%(asctime)s - %(levelname)s - %(message)s'
    )

    command = argv[0] if argv else None
    if command == 'keys' and len(argv) == 2:
        try:
            keys = list_keys(argv[1])
        except (OSError, ValueError) as e:
            logging.error(f"{argv[1]}: {e}")
            return 1
        logging.info(f"{len(keys)} keys in {argv[1]}")
        for key in keys:
            print(key)
    elif command == 'paths' and len(argv) == 2:
        for path, save_path in read_save_paths(argv[1]):
            print(f"{path}: {save_path}")
    elif command == 'patch' and len(argv) == 5:
        replace_save_paths(*argv[1:])
    else:
        print(USAGE)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
