import os

from kivy.app import App
from kivy.core.audio import SoundLoader
from kivy.uix.boxlayout import BoxLayout
from kivy.uix.button import Button
from kivy.uix.label import Label
from kivy.uix.spinner import Spinner
from kivy.uix.tabbedpanel import TabbedPanel, TabbedPanelItem
from kivy.uix.textinput import TextInput
from kivy.uix.togglebutton import ToggleButton
from kivy.utils import get_color_from_hex

from . import bluetooth_manager  # noqa: F401  registers the "bluetooth" source
from .app_config import AppConfig
from .async_utils import install_asyncio_loop
from .debug_helper import logger
from .sensor_source import create_source
from .user_settings import UserSettings
from .zone_models import AlertEvent, InvalidConfig, SensorStatus, ZoneState
from .zone_monitor import ZoneMonitor
from .zone_timer import format_duration

SOUND_DIR = os.path.join(os.path.dirname(os.path.abspath(__file__)), "sounds")

ZONE_COLORS = {
    ZoneState.UNKNOWN: get_color_from_hex("#9ca3af"),
    ZoneState.BELOW: get_color_from_hex("#eab308"),
    ZoneState.IN_ZONE: get_color_from_hex("#10b981"),
    ZoneState.ABOVE: get_color_from_hex("#ef4444"),
}

ZONE_MESSAGES = {
    ZoneState.UNKNOWN: "Waiting for data...",
    ZoneState.BELOW: "Pick it up! Below Zone 2",
    ZoneState.IN_ZONE: "Perfect! In Zone 2",
    ZoneState.ABOVE: "Slow down! Above Zone 2",
}


def format_device(device):
    return f"{device['name']} ({device['address']})"


def device_address(selected_text):
    """Extract the address from "Device Name (AA:BB:CC:DD:EE:FF)"."""
    if not selected_text or "(" not in selected_text:
        return None
    return selected_text.rsplit("(", 1)[1].rstrip(")").strip() or None


class Zone2MonitorApp(App):

    def __init__(self, config=None, **kwargs):
        super().__init__(**kwargs)
        self.app_config = config or AppConfig.from_env()
        self.sounds = {}

    def build(self):
        self.title = "Zone 2 Monitor"
        self.event_loop = install_asyncio_loop()

        self.settings_store = UserSettings(self.app_config.settings_path)
        self.monitor = ZoneMonitor(
            self.settings_store,
            staleness_window=self.app_config.staleness_window,
            debounce_interval=self.app_config.debounce_interval,
        )
        self.monitor.bind(
            on_update=self._on_update,
            on_alert=self._on_alert,
            on_status=self._on_status,
        )
        self.source = create_source(self.app_config.source, self.monitor)
        if hasattr(self.source, "start_scan"):
            self.source.bind(on_devices_found=self._on_devices_found)
        self.simulated = None
        self._load_sounds()

        self.main_layout = TabbedPanel(do_default_tab=False)
        self.main_layout.add_widget(self.build_dashboard_tab())
        self.main_layout.add_widget(self.build_settings_tab())
        self.main_layout.add_widget(self.build_connection_tab())

        self.monitor.new_session()
        self.monitor.start(self.app_config.tick_interval)
        return self.main_layout

    def on_stop(self):
        self.monitor.stop()
        self.source.stop()
        if self.simulated is not None:
            self.simulated.stop()

    # ---------- tabs ----------
    def build_dashboard_tab(self):
        tab = TabbedPanelItem(text='Dashboard')
        layout = BoxLayout(orientation='vertical', spacing=10, padding=15)

        header = BoxLayout(size_hint_y=0.1)
        self.range_label = Label(text='Zone 2: --', font_size=18)
        header.add_widget(self.range_label)
        self.connection_label = Label(text=SensorStatus.IDLE.text, color=(1, 0, 0, 1))
        header.add_widget(self.connection_label)
        layout.add_widget(header)

        self.hr_value_label = Label(text='--', font_size=96, color=ZONE_COLORS[ZoneState.UNKNOWN])
        layout.add_widget(self.hr_value_label)
        layout.add_widget(Label(text='BPM', font_size=18, size_hint_y=0.1))
        self.zone_label = Label(text=ZONE_MESSAGES[ZoneState.UNKNOWN], font_size=24,
                                size_hint_y=0.15, color=ZONE_COLORS[ZoneState.UNKNOWN])
        layout.add_widget(self.zone_label)

        counters = BoxLayout(size_hint_y=0.2, spacing=10)
        zone_box = BoxLayout(orientation='vertical')
        zone_box.add_widget(Label(text='TIME IN ZONE'))
        self.zone_time_label = Label(text='00:00', font_size=24)
        zone_box.add_widget(self.zone_time_label)
        counters.add_widget(zone_box)
        total_box = BoxLayout(orientation='vertical')
        total_box.add_widget(Label(text='TOTAL TIME'))
        self.total_time_label = Label(text='00:00', font_size=24)
        total_box.add_widget(self.total_time_label)
        counters.add_widget(total_box)
        layout.add_widget(counters)

        buttons = BoxLayout(size_hint_y=0.15, spacing=10)
        self.connect_btn = Button(text='Connect HR Monitor', on_press=self.toggle_connection)
        buttons.add_widget(self.connect_btn)
        buttons.add_widget(Button(text='Reset Timer', on_press=lambda _: self.monitor.reset_counters()))
        buttons.add_widget(Button(text='New Session', on_press=lambda _: self.monitor.new_session()))
        layout.add_widget(buttons)

        tab.add_widget(layout)
        return tab

    def build_settings_tab(self):
        tab = TabbedPanelItem(text='Settings')
        layout = BoxLayout(orientation='vertical', spacing=10, padding=15)
        settings = self.settings_store
        config = self._safe_config()

        layout.add_widget(Label(text='Zone 2 Range', font_size=24))
        self.low_input = self._add_field(layout, 'Low (bpm):', config.low if config else settings.low)
        self.high_input = self._add_field(layout, 'High (bpm):', config.high if config else settings.high)
        self.buffer_input = self._add_field(layout, 'Buffer (bpm):', settings.buffer)

        layout.add_widget(Label(text='Age-Based Estimate', font_size=24))
        self.age_input = self._add_field(layout, 'Age:', settings.age)
        self.estimate_label = Label(text='')
        layout.add_widget(self.estimate_label)
        self.age_input.bind(text=self._on_age_text)
        self._on_age_text(self.age_input, self.age_input.text)

        buttons = BoxLayout(size_hint_y=0.2, spacing=10)
        buttons.add_widget(Button(text='Reset to Age Estimate', on_press=self.reset_to_estimate))
        buttons.add_widget(Button(text='Save', on_press=self.apply_settings))
        layout.add_widget(buttons)

        self.sound_btn = ToggleButton(text='Alert Sounds', size_hint_y=0.15,
                                      state='down' if settings.sound_enabled else 'normal')
        self.sound_btn.bind(state=lambda _, value: settings.set_sound_enabled(value == 'down'))
        layout.add_widget(self.sound_btn)

        self.settings_status = Label(text='', size_hint_y=0.1)
        layout.add_widget(self.settings_status)
        tab.add_widget(layout)
        return tab

    def build_connection_tab(self):
        tab = self.connection_tab = TabbedPanelItem(text='Connection')
        layout = BoxLayout(orientation='vertical', spacing=10, padding=15)

        self.scan_btn = Button(text='Scan for HR Monitors', size_hint_y=0.15)
        self.scan_btn.bind(on_press=self.start_scan)
        layout.add_widget(self.scan_btn)

        self.device_spinner = Spinner(text='No devices found', values=[], size_hint_y=0.15)
        layout.add_widget(self.device_spinner)

        self.connect_device_btn = Button(text='Connect Selected Device', size_hint_y=0.15)
        self.connect_device_btn.bind(on_press=self.connect_selected_device)
        layout.add_widget(self.connect_device_btn)

        self.connection_status_label = Label(text=SensorStatus.IDLE.text)
        layout.add_widget(self.connection_status_label)

        self.debug_btn = ToggleButton(text='Enable Simulated HR', size_hint_y=0.15)
        self.debug_btn.bind(state=self.toggle_debug_mode)
        layout.add_widget(self.debug_btn)

        tab.add_widget(layout)
        return tab

    def _add_field(self, layout, label, value):
        row = BoxLayout(size_hint_y=0.12)
        row.add_widget(Label(text=label, size_hint_x=0.4))
        field = TextInput(text=str(value), input_filter='int', multiline=False)
        row.add_widget(field)
        layout.add_widget(row)
        return field

    # ---------- actions ----------
    def toggle_connection(self, instance):
        if self.source.is_connected():
            self.source.stop()
        elif self.device_spinner.values:
            self.connect_selected_device(None)
        else:
            self.main_layout.switch_to(self.connection_tab)
            self.start_scan(None)

    def start_scan(self, instance):
        if not hasattr(self.source, "start_scan"):
            self.source.start()
            return
        self.scan_btn.disabled = True
        self.device_spinner.values = []
        self.device_spinner.text = "Scanning for devices..."
        self.source.start_scan()

    def connect_selected_device(self, instance):
        address = device_address(self.device_spinner.text)
        if not address:
            logger.warning("No device selected: %s", self.device_spinner.text)
            return
        self.source.connect(address)

    def toggle_debug_mode(self, instance, value):
        """Toggle simulated heart rate for running without a monitor"""
        if value == 'down':
            self.simulated = create_source("simulated", self.monitor, base_bpm=self._simulation_base())
            self.simulated.start()
        elif self.simulated is not None:
            self.simulated.stop()
            self.simulated = None

    def apply_settings(self, instance):
        try:
            self.settings_store.save(
                self.age_input.text,
                self.low_input.text or 0,
                self.high_input.text or 0,
                buffer=self.buffer_input.text or 0,
            )
        except (InvalidConfig, ValueError) as e:
            self.settings_status.text = str(e)
            return
        self.settings_status.text = 'Using custom values' if self.settings_store.use_custom_range else 'Saved'

    def reset_to_estimate(self, instance):
        try:
            estimate = self.settings_store.reset_to_estimate(self.age_input.text)
        except InvalidConfig as e:
            self.settings_status.text = str(e)
            return
        self.low_input.text = str(estimate.low)
        self.high_input.text = str(estimate.high)
        self.settings_status.text = 'Using age estimate'

    # ---------- monitor events ----------
    def _on_update(self, monitor, snapshot):
        color = ZONE_COLORS[snapshot.state]
        self.hr_value_label.text = str(snapshot.bpm) if snapshot.bpm is not None else '--'
        self.hr_value_label.color = color
        self.zone_label.text = ZONE_MESSAGES[snapshot.state]
        self.zone_label.color = color
        self.zone_time_label.text = format_duration(snapshot.zone_seconds)
        self.total_time_label.text = format_duration(snapshot.total_seconds)
        if snapshot.config is not None:
            self.range_label.text = f"Zone 2: {snapshot.config.describe()}"

    def _on_alert(self, monitor, alert):
        self.zone_label.text = alert.message
        if not self.settings_store.sound_enabled:
            return
        sound = self.sounds.get(alert)
        if sound is not None:
            sound.stop()
            sound.play()

    def _on_status(self, monitor, status, text):
        self.connection_label.text = text
        self.connection_label.color = (0, 1, 0, 1) if status == SensorStatus.CONNECTED else (1, 0, 0, 1)
        self.connection_status_label.text = text
        self.connect_btn.text = 'Disconnect' if status == SensorStatus.CONNECTED else 'Connect HR Monitor'
        if status != SensorStatus.SCANNING:
            self.scan_btn.disabled = False

    def _on_devices_found(self, source, devices):
        values = [format_device(d) for d in devices]
        self.device_spinner.values = values
        self.device_spinner.text = values[0] if values else 'No devices found'

    def _on_age_text(self, instance, value):
        try:
            estimate = self.settings_store.estimate(int(value))
        except (InvalidConfig, ValueError):
            self.estimate_label.text = 'Estimated Zone 2: --'
            return
        self.estimate_label.text = f"Estimated Zone 2: {estimate.describe()} bpm"

    # ---------- helpers ----------
    def _safe_config(self):
        try:
            return self.settings_store.zone_config()
        except InvalidConfig:
            return None

    def _simulation_base(self):
        config = self._safe_config()
        return (config.low + config.high) // 2 if config else 120

    def _load_sounds(self):
        for alert in AlertEvent:
            path = os.path.join(SOUND_DIR, f"{alert.value}.wav")
            sound = SoundLoader.load(path) if os.path.exists(path) else None
            if sound is None:
                logger.info("No alert sound for %s at %s", alert.name, path)
            self.sounds[alert] = sound
