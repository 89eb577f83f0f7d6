import os
import sys
import shutil
import subprocess
from enum import Enum
from contextlib import contextmanager
from types import MappingProxyType
from colorama import Fore, Style
from tqdm import tqdm

UNPACKER_EXE = "undfs.exe"
PACKER_SCRIPT = "pack_dfs_Drag'n'Drop.bat"

LEVELS_DIR = "levels"
STAGING_LEVELS_DIR = "LEVELS"

ARCHIVE_EXTENSIONS = (".dfs", ".000")
AUDIO_FILES = ("audio1.dfs", "audio2.dfs", "audio1.000", "audio2.000")

# Level folder name -> short folder name the packer script expects
LEVEL_MAP = MappingProxyType({
	"CH00_DREAMWORLD": "Ch00_Dre",
	"CH01_HOBBITON": "Ch01_Hob",
	"CH02_ROASTMUTTON": "Ch02_Roa",
	"CH02A_TROLLHOLE": "Ch02a_Tr",
	"CH4_OVERHILL": "Ch4_Over",
	"CH05_SWORDLIGHT": "Ch05_Swo",
	"CH07_BARRELSOUTOFBOND": "Ch07_Bar",
	"CH08_LAKETOWN": "Ch08_Lak",
	"CH09_SMAUG": "Ch09_Sma",
	"CH10_LONELY_MOUNTAIN": "Ch10_Lon",
	"CH11_CLOUDSBURST": "Ch11_Clo",
	"MIRKWOOD": "Mirkwood",
})

class Mode(Enum):
	NOT_DEFINED = 0
	PACK = 1
	UNPACK = 2

class UnpackReport:
	def __init__(self):
		self.unpacked = []
		self.failed = []
		self.skipped = []
		self.deleted = []
		self.kept = []

class PackReport:
	def __init__(self):
		self.packed = []
		self.failed = []
		self.unmapped = []
		self.skipped = []

def log(message, is_log_enabled):
	if is_log_enabled:
		tqdm.write(message)

def log_error(message):
	tqdm.write(f"{Fore.RED}Error: {message}{Style.RESET_ALL}", file=sys.stderr)

def get_extension(filename) -> str:
	return os.path.splitext(filename)[1].lower()

def is_dfs_file(filename) -> bool:
	return get_extension(filename) == ".dfs"

def is_archive_file(filename) -> bool:
	return get_extension(filename) in ARCHIVE_EXTENSIONS

def is_audio_file(filename) -> bool:
	return filename.lower() in AUDIO_FILES

def folder_exists(path) -> bool:
	return os.path.exists(path) and os.path.isdir(path)

def find_duplicate_aliases(level_map) -> list[str]:
	seen = set()
	duplicates = set()
	for alias in level_map.values():
		if alias in seen:
			duplicates.add(alias)
		seen.add(alias)
	return sorted(duplicates)

def list_files(root) -> list[str]:
	return [name for name in sorted(os.listdir(root)) if os.path.isfile(os.path.join(root, name))]

def list_folders(root) -> list[str]:
	return [name for name in sorted(os.listdir(root)) if os.path.isdir(os.path.join(root, name))]

@contextmanager
def with_progress(items, desc, is_log_enabled):
	if is_log_enabled:
		yield items
		return
	with tqdm(items, desc=desc) as bar:
		yield bar

def run_command(executable, path) -> int:
	"""
	Run an external tool with a single path argument and wait for it to exit.
	Returns the exit code, or -1 when the tool could not be started.
	"""
	try:
		return subprocess.run([executable, str(path)]).returncode
	except OSError as e:
		log_error(f"Could not start '{executable}': {e}")
		return -1

def delete_archive_files(root=None, keep_audio_files=False, is_log_enabled=False, report=None):
	root = os.path.abspath(root or os.getcwd())
	report = report if report is not None else UnpackReport()

	try:
		with with_progress(list_files(root), "Deleting", is_log_enabled) as progress:
			for file_name in progress:
				if not is_archive_file(file_name):
					continue
				file_path = os.path.join(root, file_name)
				if keep_audio_files and is_audio_file(file_name):
					log(f"Keeping file: {Fore.GREEN}{file_path}{Style.RESET_ALL}", is_log_enabled)
					report.kept.append(file_name)
					continue
				log(f"Deleting file: {Fore.RED}{file_path}{Style.RESET_ALL}", is_log_enabled)
				os.remove(file_path)
				report.deleted.append(file_name)
	except OSError as e:
		log_error(f"Filesystem error: {e}")

	return report

def unpack_files(root=None, skip_audio_files=False, unpacker=UNPACKER_EXE, runner=run_command, is_log_enabled=False):
	"""
	Run the unpacker on every .dfs archive in root, then delete the .dfs and .000 files.
	With skip_audio_files the audio1/audio2 archives are neither unpacked nor deleted.
	"""
	root = os.path.abspath(root or os.getcwd())
	report = UnpackReport()

	try:
		with with_progress(list_files(root), "Unpacking", is_log_enabled) as progress:
			for file_name in progress:
				if not is_dfs_file(file_name):
					continue
				if skip_audio_files and is_audio_file(file_name):
					log(f"Skipping file: {Fore.YELLOW}{file_name}{Style.RESET_ALL}", is_log_enabled)
					report.skipped.append(file_name)
					continue

				file_path = os.path.join(root, file_name)
				if runner(unpacker, file_path) != 0:
					log_error(f"Error running {unpacker} for file: {file_path}")
					report.failed.append(file_name)
				else:
					log(f"Successfully unpacked: {Fore.GREEN}{file_path}{Style.RESET_ALL}", is_log_enabled)
					report.unpacked.append(file_name)
	except OSError as e:
		log_error(f"Filesystem error: {e}")

	return delete_archive_files(root, skip_audio_files, is_log_enabled, report)

def pack_level_folder(root, level_name, alias, packer, runner, is_log_enabled) -> bool:
	levels_dir = os.path.join(root, LEVELS_DIR)
	staging_dir = os.path.join(root, alias)
	staging_levels_dir = os.path.join(staging_dir, STAGING_LEVELS_DIR)

	try:
		os.makedirs(staging_levels_dir, exist_ok=True)
		os.rename(os.path.join(levels_dir, level_name), os.path.join(staging_levels_dir, level_name))
		log(f"Moved {level_name} to {Fore.BLUE}{staging_levels_dir}{Style.RESET_ALL}", is_log_enabled)

		log(f"Running: {packer} \"{staging_dir}\"", is_log_enabled)
		is_packed = runner(packer, staging_dir) == 0
		if is_packed:
			log(f"Successfully packed: {Fore.GREEN}{level_name}{Style.RESET_ALL}", is_log_enabled)
		else:
			log_error(f"Error running {packer} for: {level_name}")
	finally:
		# Staging folder never outlives its level, even when the packer failed
		if os.path.exists(staging_dir):
			shutil.rmtree(staging_dir)
			log(f"Deleted folder: {Fore.RED}{alias}{Style.RESET_ALL}", is_log_enabled)

	return is_packed

def move_level_folders(root=None, packer=PACKER_SCRIPT, runner=run_command, level_map=LEVEL_MAP, is_log_enabled=False):
	"""
	Pack every mapped folder under root/levels.

	Each level is moved to root/<alias>/LEVELS/<level>, the packer is run on root/<alias>
	and root/<alias> is removed again before the next level. Unmapped folders stay where they are.
	A top-level root/LEVELS folder is removed at the end.
	"""
	root = os.path.abspath(root or os.getcwd())
	levels_dir = os.path.join(root, LEVELS_DIR)
	report = PackReport()

	if not folder_exists(levels_dir):
		log_error(f"'{LEVELS_DIR}' folder not found in {root}!")
		return report

	duplicates = find_duplicate_aliases(level_map)
	if duplicates:
		log_error(f"Level map has aliases shared by several levels: {', '.join(duplicates)}")
		return report

	try:
		with with_progress(list_folders(levels_dir), "Packing", is_log_enabled) as progress:
			for level_name in progress:
				alias = level_map.get(level_name)
				if alias is None:
					log(f"No mapping found for level: {Fore.YELLOW}{level_name}{Style.RESET_ALL}, skipping...", is_log_enabled)
					report.unmapped.append(level_name)
					continue
				if os.path.exists(os.path.join(root, alias)):
					log_error(f"Folder '{alias}' already exists, skipping level: {level_name}")
					report.skipped.append(level_name)
					continue

				if pack_level_folder(root, level_name, alias, packer, runner, is_log_enabled):
					report.packed.append(level_name)
				else:
					report.failed.append(level_name)
	except OSError as e:
		log_error(f"Filesystem error: {e}")

	leftover_dir = os.path.join(root, STAGING_LEVELS_DIR)
	try:
		# On case-insensitive filesystems LEVELS is the levels folder itself
		if os.path.exists(leftover_dir):
			if folder_exists(levels_dir) and os.path.samefile(leftover_dir, levels_dir):
				log(f"'{STAGING_LEVELS_DIR}' is the '{LEVELS_DIR}' folder, keeping it", is_log_enabled)
			else:
				shutil.rmtree(leftover_dir)
				log(f"Deleted '{STAGING_LEVELS_DIR}' folder: {Fore.RED}{leftover_dir}{Style.RESET_ALL}", is_log_enabled)
	except OSError as e:
		log_error(f"Filesystem error: {e}")

	return report
