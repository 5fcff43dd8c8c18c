"""Service Worker used when PWA mode is off.

Acts as a kill switch: unregisters itself and drops every cache left
behind by a previous PWA build.
"""

SERVICE_WORKER_OFF_JS = """\
console.log("PWA mode is off - removing service worker and caches");

self.addEventListener("install", () => {
    self.skipWaiting();
});

self.addEventListener("activate", event => {
    event.waitUntil(
        (async () => {
            await self.registration.unregister();
            const cacheNames = await caches.keys();
            await Promise.all(cacheNames.map(name => caches.delete(name)));
        })()
    );
});
"""
