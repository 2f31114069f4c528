"""File and unit templates for the bootstrap machine.

Templates are rendered with BootstrapTemplateData fields as variables.
"""

from __future__ import annotations

BOOTKUBE_SH_TEMPLATE = """\
#!/usr/bin/env bash
set -e

mkdir --parents /etc/kubernetes/manifests

echo "Rendering cluster assets from {{ release_image }}..."
podman run \\
	--volume "$PWD:/assets:z" \\
	"{{ bootkube_image }}" \\
	render \\
		--asset-dir=/assets \\
		--etcd-servers={{ etcd_cluster }} \\
		--config-override-dir=/assets/bootkube-config-overrides

echo "Waiting for etcd cluster..."
until podman run \\
	--rm \\
	--network host \\
	--volume /opt/kiln/tls:/opt/kiln/tls:ro,z \\
	--env ETCDCTL_API=3 \\
	"{{ etcdctl_image }}" \\
	/usr/local/bin/etcdctl \\
	--cacert=/opt/kiln/tls/etcd-client-ca.crt \\
	--cert=/opt/kiln/tls/etcd-client.crt \\
	--key=/opt/kiln/tls/etcd-client.key \\
	--endpoints={{ etcd_cluster }} \\
	endpoint health
do
	echo "etcdctl failed. Retrying in 5 seconds..."
	sleep 5
done

echo "Starting bootkube..."
podman run \\
	--volume "$PWD:/assets:z" \\
	--volume /etc/kubernetes:/etc/kubernetes:z \\
	--network=host \\
	"{{ bootkube_image }}" \\
	start --asset-dir=/assets
"""

BOOTKUBE_CONFIG_OVERRIDES = {
    "kube-apiserver-config-overrides.yaml": """\
apiVersion: kubecontrolplane.config/v1
kind: KubeAPIServerConfig
storageConfig:
  urls:
{% for endpoint in etcd_cluster.split(",") %}
  - {{ endpoint }}
{% endfor %}
""",
    "kube-controller-manager-config-overrides.yaml": """\
apiVersion: kubecontrolplane.config/v1
kind: KubeControllerManagerConfig
extendedArguments:
  cluster-signing-cert-file:
  - /etc/kubernetes/secrets/kube-ca.crt
  cluster-signing-key-file:
  - /etc/kubernetes/secrets/kube-ca.key
""",
}

KUBE_DNS_SERVICE_TEMPLATE = """\
apiVersion: v1
kind: Service
metadata:
  name: kube-dns
  namespace: kube-system
  labels:
    k8s-app: kube-dns
spec:
  selector:
    k8s-app: kube-dns
  clusterIP: {{ cluster_dns_ip }}
  ports:
  - name: dns
    port: 53
    protocol: UDP
  - name: dns-tcp
    port: 53
    protocol: TCP
"""

REPORT_PROGRESS_SH = """\
#!/usr/bin/env bash
set -e

KUBECONFIG="${1}"
NAME="${2}"
MESSAGE="${3}"

echo "Reporting install progress..."
until oc --config="$KUBECONFIG" create -f - <<-EOF
	apiVersion: v1
	kind: ConfigMap
	metadata:
	  name: ${NAME}
	  namespace: kube-system
	data:
	  status: ${MESSAGE}
EOF
do
	sleep 5
done
"""

BOOTKUBE_SERVICE = """\
[Unit]
Description=Bootstrap a Kubernetes cluster
Wants=kubelet.service
After=kubelet.service

[Service]
WorkingDirectory=/opt/kiln
ExecStart=/usr/local/bin/bootkube.sh
Restart=on-failure
RestartSec=5s
"""

PROGRESS_SERVICE = """\
[Unit]
Description=Report the completion of the cluster bootstrap process
Requires=bootkube.service
After=bootkube.service

[Service]
ExecStart=/usr/local/bin/report-progress.sh /opt/kiln/auth/kubeconfig-admin bootstrap-complete "cluster bootstrap is complete"
Restart=on-failure
RestartSec=5s

[Install]
WantedBy=multi-user.target
"""

KUBELET_SERVICE = """\
[Unit]
Description=Kubernetes Kubelet
Wants=rpc-statd.service

[Service]
ExecStartPre=/bin/mkdir --parents /etc/kubernetes/manifests
ExecStart=/usr/bin/kubelet \\
	--kubeconfig=/etc/kubernetes/kubeconfig \\
	--pod-manifest-path=/etc/kubernetes/manifests \\
	--allow-privileged \\
	--minimum-container-ttl-duration=6m0s \\
	--cluster-domain=cluster.local \\
	--cgroup-driver=systemd
Restart=always
RestartSec=10

[Install]
WantedBy=multi-user.target
"""

OPERATORS_SH = """\
#!/usr/bin/env bash
set -e

KUBECONFIG=/opt/kiln/auth/kubeconfig-admin

echo "Waiting for the API server..."
until oc --config="$KUBECONFIG" get --raw /healthz >/dev/null 2>&1
do
	sleep 5
done

echo "Creating operator resources..."
until oc --config="$KUBECONFIG" apply --filename=/opt/kiln/operators
do
	echo "Failed to create operator resources. Retrying in 5 seconds..."
	sleep 5
done
"""

OPERATORS_SERVICE = """\
[Unit]
Description=Create the resources consumed by the cluster operators
Requires=bootkube.service
After=bootkube.service

[Service]
ExecStart=/usr/local/bin/operators.sh
Restart=on-failure
RestartSec=5s
"""

POD_CHECKPOINTER_BOOTKUBE_MANIFESTS = {
    "pod-checkpointer-config.yaml": """\
apiVersion: v1
kind: ConfigMap
metadata:
  name: pod-checkpointer-operator-config
  namespace: kube-system
data:
  checkpoint-grace-period: 1m0s
""",
}

KUBE_PROXY_BOOTKUBE_MANIFESTS = {
    "kube-proxy-config.yaml": """\
apiVersion: v1
kind: ConfigMap
metadata:
  name: kube-proxy-operator-config
  namespace: kube-system
data:
  proxy-mode: iptables
""",
}
