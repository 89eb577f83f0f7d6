import sys
import os
from types import SimpleNamespace
import colorama
from colorama import Fore, Style
from multiprocessing import freeze_support
from hobbit_packer import Mode, UNPACKER_EXE, PACKER_SCRIPT, unpack_files, move_level_folders

def is_next_optional_parameter(args, i) -> bool:
	return i+1 < len(args) and not args[i+1].startswith("-")

def usage_error(message):
	print(f"{Fore.RED}Error: {message}{Style.RESET_ALL}", file=sys.stderr)
	sys.exit(1)

def parse_args(args):
	options = SimpleNamespace(
		mode=Mode.NOT_DEFINED,
		skip_audio_files=False,
		is_log_enabled=False,
		input_folder=".",
		unpacker=UNPACKER_EXE,
		packer=PACKER_SCRIPT,
	)
	is_packing_enabled = False
	is_unpacking_enabled = False

	skip_next = False
	for i, arg in enumerate(args):
		if skip_next:
			skip_next = False
			continue
		if arg in ("-p", "--pack"):
			is_packing_enabled = True
		elif arg in ("-u", "--unpack"):
			is_unpacking_enabled = True
		elif arg in ("-k", "--keep-audio"):
			options.skip_audio_files = True
		elif arg in ("-l", "--log"):
			options.is_log_enabled = True
		elif arg in ("-i", "--input"):
			if not is_next_optional_parameter(args, i):
				usage_error("--input requires a folder path.")
			options.input_folder = args[i+1]
			skip_next = True
		elif arg == "--unpacker":
			if not is_next_optional_parameter(args, i):
				usage_error("--unpacker requires a path to the unpacker executable.")
			options.unpacker = args[i+1]
			skip_next = True
		elif arg == "--packer":
			if not is_next_optional_parameter(args, i):
				usage_error("--packer requires a path to the packer script.")
			options.packer = args[i+1]
			skip_next = True
		else:
			usage_error(f"Unknown option '{arg}'!")

	if is_packing_enabled and is_unpacking_enabled:
		usage_error("You cannot --pack and --unpack at the same time.")
	if is_packing_enabled:
		options.mode = Mode.PACK
	elif is_unpacking_enabled:
		options.mode = Mode.UNPACK

	return options

def prompt_mode() -> Mode:
	print("Choose an option:")
	print("1. Pack")
	print(f"2. Unpack (Run {UNPACKER_EXE} and delete .dfs and .000 files)")
	try:
		choice = input("Enter your choice (1 or 2): ").strip()
	except EOFError:
		choice = ""
	if choice == "1":
		return Mode.PACK
	if choice == "2":
		return Mode.UNPACK
	print(f"{Fore.RED}Invalid choice! Please choose 1 or 2.{Style.RESET_ALL}", file=sys.stderr)
	return Mode.NOT_DEFINED

def prompt_skip_audio_files() -> bool:
	try:
		answer = input("Do you want to skip audio1.dfs and audio2.dfs files during unpacking? (y/n): ").strip()
	except EOFError:
		answer = ""
	return answer[:1] in ("y", "Y")

def run(options):
	if options.mode == Mode.UNPACK:
		if options.skip_audio_files:
			print(f"{Fore.YELLOW}Will skip audio files{Style.RESET_ALL}")
		print(">> Unpacking...")
		unpack_files(os.getcwd(), options.skip_audio_files, options.unpacker, is_log_enabled=options.is_log_enabled)
	elif options.mode == Mode.PACK:
		print(">> Packing...")
		move_level_folders(os.getcwd(), options.packer, is_log_enabled=options.is_log_enabled)

def mane():
	print(">> Initializing...")
	colorama.init()

	options = parse_args(sys.argv[1:])

	if not os.path.exists(options.input_folder):
		usage_error(f"The specified input folder '{options.input_folder}' does not exist.")
	os.chdir(options.input_folder)
	print(f"Current working directory set to: {os.getcwd()}")

	# No mode on the command line: ask, like the double-clicked exe always did
	is_interactive = options.mode == Mode.NOT_DEFINED
	if is_interactive:
		options.is_log_enabled = True
		options.mode = prompt_mode()
		if options.mode == Mode.UNPACK:
			options.skip_audio_files = prompt_skip_audio_files()

	run(options)

	if options.mode != Mode.NOT_DEFINED:
		print(">> DONE!")
	if is_interactive:
		try:
			input("\nPress Enter to continue...")
		except EOFError:
			print()
	sys.exit()

if __name__ == "__main__":
	freeze_support()
	mane()
